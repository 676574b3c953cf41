from dataclasses import dataclass, field


@dataclass(frozen=True)
class Credentials:
    """An API key and its shared secret."""

    key: str
    secret: str

    def __repr__(self) -> str:
        return f"Credentials(key='{self.key[:4]}***')"


@dataclass(frozen=True)
class RequestEnvelope:
    """A fully prepared outbound request.

    Built fresh for every call and never reused. For GET requests the query is
    already encoded into `url`; for signed POST requests `body` holds the
    exact bytes that were signed.
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None
    nonce: int | None = None
