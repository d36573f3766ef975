"""Domain models for remote session records."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class SessionKey:
    """Composite identity addressing one session record."""

    owner: str
    application: str
    name: str

    def __post_init__(self) -> None:
        for label, value in (
            ("owner", self.owner),
            ("application", self.application),
            ("name", self.name),
        ):
            if not value:
                raise ValueError(f"Session key {label} must be non-empty")

    @property
    def pk_id(self) -> str:
        """Return the id the remote service uses for this key."""
        return f"{self.owner}/{self.name}/{self.application}"


@dataclass(frozen=True)
class SessionRecord:
    """Transient copy of a session record owned by the remote service."""

    owner: str
    name: str
    application: str
    created_time: str = ""
    session_id: tuple[str, ...] = ()

    @classmethod
    def for_key(
        cls, key: SessionKey, session_id: tuple[str, ...] = ()
    ) -> "SessionRecord":
        """Build a request record for a key with the given tokens."""
        return cls(
            owner=key.owner,
            name=key.name,
            application=key.application,
            session_id=session_id,
        )

    def to_wire(self) -> dict[str, object]:
        """Return the JSON shape used by the remote service."""
        return {
            "owner": self.owner,
            "name": self.name,
            "application": self.application,
            "createdTime": self.created_time,
            "sessionId": list(self.session_id),
        }

    @classmethod
    def from_wire(cls, row: dict[str, object]) -> "SessionRecord":
        """Parse a record from its JSON shape."""
        tokens = row.get("sessionId") or []
        if not isinstance(tokens, list):
            raise TypeError("sessionId must be a list")
        return cls(
            owner=str(row.get("owner") or ""),
            name=str(row.get("name") or ""),
            application=str(row.get("application") or ""),
            created_time=str(row.get("createdTime") or ""),
            session_id=tuple(_token(token) for token in tokens),
        )


def _token(value: object) -> str:
    if not isinstance(value, str):
        raise TypeError(
            f"sessionId entries must be strings, got {type(value).__name__}"
        )
    return value


@dataclass(frozen=True)
class ResponseEnvelope:
    """Uniform reply wrapper returned by the remote service."""

    status: str
    msg: str = ""
    data: object = None
    data2: object = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def affected(self) -> bool:
        """Whether the service reported a changed record."""
        return self.data == "Affected"


class DuplicateStatus(str, Enum):
    """Outcome of a duplicate token check."""

    DUPLICATED = "duplicated"
    NOT_DUPLICATED = "not_duplicated"
    CHECK_FAILED = "check_failed"


@dataclass(frozen=True)
class DuplicateCheck:
    """Result of checking whether a token is already registered."""

    status: DuplicateStatus
    cause: Exception | None = field(default=None, compare=False)

    @property
    def duplicated(self) -> bool:
        return self.status is DuplicateStatus.DUPLICATED
