"""
Session identity extraction from per-call protocol headers.

Controllers attach a credentials block to every call. Depending on the
controller firmware it arrives either already decoded (a `Credentials`
instance built by the transport) or as raw XML markup that still has to be
deserialized. Both shapes normalize to `Credentials` before use.

The session id handed out by `getSessionId` is the username itself, so the
identity is the session id when present and the login username otherwise.

Headers are passed in explicitly on every call and nothing is cached.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from sonority.core import CoreError

logger = logging.getLogger(__name__)

CREDENTIALS_NAMESPACE = "http://www.sonos.com/Services/1.1"


class CredentialsError(CoreError):
    """Raised when a header cannot be deserialized into `Credentials`."""

    fault_code = "Client.InvalidCredentials"


@dataclass(frozen=True, slots=True)
class LoginToken:
    username: str | None = None
    password: str | None = None


@dataclass(frozen=True, slots=True)
class Credentials:
    """Credentials block as sent by a controller."""

    session_id: str | None = None
    login: LoginToken | None = None
    device_id: str | None = None

    @property
    def username(self) -> str | None:
        """Session id if set (all calls after the first), else the login username."""
        if self.session_id:
            return self.session_id
        if self.login is not None and self.login.username:
            return self.login.username
        return None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Credentials:
        """
        Build credentials from a decoded JSON object.

        Accepts both camelCase (wire) and snake_case keys.
        """
        login_data = data.get("login")
        login: LoginToken | None = None
        if isinstance(login_data, Mapping):
            login = LoginToken(
                username=_opt_str(login_data.get("username")),
                password=_opt_str(login_data.get("password")),
            )
        elif login_data is not None:
            raise CredentialsError("login must be an object")

        return cls(
            session_id=_opt_str(data.get("sessionId", data.get("session_id"))),
            login=login,
            device_id=_opt_str(data.get("deviceId", data.get("device_id"))),
        )


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s if s else None


def _local_name(tag: str) -> str:
    # "{namespace}name" -> "name"
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str) -> str | None:
    for child in element:
        if _local_name(child.tag) == name:
            return _opt_str(child.text)
    return None


def _find_child(element: ET.Element, name: str) -> ET.Element | None:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def parse_credentials_markup(markup: str | bytes | ET.Element) -> Credentials:
    """
    Deserialize a credentials XML fragment.

    Element names are matched by local name, so both namespaced and bare
    fragments are accepted:

        <credentials xmlns="http://www.sonos.com/Services/1.1">
          <sessionId>alice</sessionId>
        </credentials>

    Raises:
        CredentialsError: markup is not well-formed or is not a credentials element.
    """
    if isinstance(markup, ET.Element):
        root = markup
    else:
        try:
            root = ET.fromstring(markup)
        except ET.ParseError as e:
            raise CredentialsError(f"Malformed credentials markup: {e}") from e

    if _local_name(root.tag) != "credentials":
        raise CredentialsError(f"Expected <credentials>, got <{_local_name(root.tag)}>")

    login: LoginToken | None = None
    login_el = _find_child(root, "login")
    if login_el is not None:
        login = LoginToken(
            username=_child_text(login_el, "username"),
            password=_child_text(login_el, "password"),
        )

    return Credentials(
        session_id=_child_text(root, "sessionId"),
        login=login,
        device_id=_child_text(root, "deviceId"),
    )


def extract_credentials(headers: Iterable[Any] | None) -> Credentials | None:
    """
    Return the first header entry that yields usable credentials.

    Entries that are not credentials are skipped; markup that fails to
    deserialize is logged and skipped so one bad header does not hide the
    others.
    """
    if not headers:
        logger.debug("No headers found")
        return None

    for header in headers:
        credentials = header
        if isinstance(header, (str, bytes, ET.Element)):
            try:
                credentials = parse_credentials_markup(header)
            except CredentialsError as e:
                logger.error("Failed to unwrap credentials from header: %s", e)
                continue

        if not isinstance(credentials, Credentials):
            logger.debug("Header is not a credentials object: %r", type(header).__name__)
            continue

        if credentials.username is None:
            logger.debug("Credentials carry neither session id nor login username")
            continue

        return credentials

    return None


def extract_username(headers: Iterable[Any] | None) -> str | None:
    """Resolve the caller's username (the session token) from call headers."""
    credentials = extract_credentials(headers)
    return credentials.username if credentials is not None else None
