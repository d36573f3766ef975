"""Token-level session operations backed by the remote authorization service."""

import json
import logging
from dataclasses import dataclass

from session_registry.adapters.remote_transport import (
    RemoteTransport,
    decode_json,
    parse_envelope,
)
from session_registry.domain.errors import DecodeError, SessionRegistryError
from session_registry.domain.sessions import (
    DuplicateCheck,
    DuplicateStatus,
    SessionKey,
    SessionRecord,
)

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionRegistryClient:
    """Registers, checks and tears down session tokens for one application.

    Every call round-trips to the remote service; nothing is cached here, so a
    single instance can be shared between concurrent callers.
    """

    transport: RemoteTransport
    organization: str
    application: str

    def session_key(self, user_name: str) -> SessionKey:
        """Return the composite key for a user in this organization/application."""
        return SessionKey(
            owner=self.organization, application=self.application, name=user_name
        )

    async def list_sessions(self) -> list[SessionRecord]:
        """Return every session record owned by the organization."""
        url = self.transport.build_url("get-sessions", {"owner": self.organization})
        payload = await self._read(url)
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise DecodeError("Expected a list of sessions")
        records = [_parse_record(row) for row in payload]
        if any(record.owner != self.organization for record in records):
            raise DecodeError("Session list contains records of another owner")
        return records

    async def get_session(self, user_name: str) -> SessionRecord | None:
        """Return the session record for a user, or None when there is none."""
        key = self.session_key(user_name)
        url = self.transport.build_url("get-session", {"sessionPkId": key.pk_id})
        payload = await self._read(url)
        if payload is None:
            return None
        record = _parse_record(payload)
        if (record.owner, record.name, record.application) != (
            key.owner,
            key.name,
            key.application,
        ):
            raise DecodeError(f"Session record does not match {key.pk_id}")
        return record

    async def add_session(self, user_name: str, session_id: str) -> bool:
        """Register a token for a user; True when the remote record changed."""
        return await self._submit("add-session", user_name, (session_id,))

    async def update_session(self, user_name: str, session_id: str) -> bool:
        """Register a token on an existing record; True when it changed."""
        return await self._submit("update-session", user_name, (session_id,))

    async def delete_session(self, user_name: str) -> bool:
        """Remove every token for a user; True when the remote record changed."""
        return await self._submit("delete-session", user_name, ())

    async def check_session_duplicated(
        self, user_name: str, session_id: str
    ) -> DuplicateCheck:
        """Ask whether a token is already registered for a user.

        Remote failures are reported as ``CHECK_FAILED`` with the cause attached
        instead of being raised.
        """
        key = self.session_key(user_name)
        url = self.transport.build_url(
            "is-session-duplicated",
            {"sessionPkId": key.pk_id, "sessionId": session_id},
        )
        try:
            envelope = await self.transport.get_envelope(url)
        except SessionRegistryError as exc:
            return DuplicateCheck(DuplicateStatus.CHECK_FAILED, cause=exc)
        if envelope.data is True:
            return DuplicateCheck(DuplicateStatus.DUPLICATED)
        return DuplicateCheck(DuplicateStatus.NOT_DUPLICATED)

    async def is_session_duplicated(self, user_name: str, session_id: str) -> bool:
        """Return True only when the remote service confirms a duplicate.

        A failed check counts as not duplicated; use
        ``check_session_duplicated`` to tell the two apart.
        """
        result = await self.check_session_duplicated(user_name, session_id)
        if result.status is DuplicateStatus.CHECK_FAILED:
            _logger.warning(
                "Duplicate session check failed: user=%s error=%s",
                user_name,
                result.cause,
            )
        return result.duplicated

    async def _read(self, url: str) -> object:
        payload = decode_json(await self.transport.get(url))
        # newer service versions wrap reads in a status envelope
        if isinstance(payload, dict) and "status" in payload:
            return parse_envelope(payload).data
        return payload

    async def _submit(
        self, action: str, user_name: str, session_id: tuple[str, ...]
    ) -> bool:
        record = SessionRecord.for_key(self.session_key(user_name), session_id)
        body = json.dumps(record.to_wire()).encode("utf-8")
        envelope = await self.transport.post(action, body=body)
        _logger.info(
            "Session %s: user=%s affected=%s", action, user_name, envelope.affected
        )
        return envelope.affected


def _parse_record(row: object) -> SessionRecord:
    if not isinstance(row, dict):
        raise DecodeError("Expected a session object")
    try:
        record = SessionRecord.from_wire(row)
        SessionKey(
            owner=record.owner, application=record.application, name=record.name
        )
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"Invalid session record: {exc}") from exc
    return record
