"""Nonce generation and HMAC signing for authenticated requests.

Exchanges disagree on the details: Poloniex signs the urlencoded form body
with SHA-512 and expects `Key`/`Sign` headers, while Bitfinex v1 signs a
base64 JSON payload with SHA-384 and expects `X-BFX-*` headers. Those choices
live in a `SigningScheme`; the `SignedRequestBuilder` itself is shared.
"""

import base64
import hashlib
import hmac
import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal
from urllib.parse import quote, urlencode, urlsplit

from cryptoexchange.errors import MissingCredentials
from cryptoexchange.models import Credentials, RequestEnvelope

# Room for up to 100 requests within the same millisecond.
NONCE_SCALE: int = 100

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class NonceGenerator:
    """Produces strictly increasing nonces derived from the clock.

    `nonce = timestamp_ms * 100 + collision_offset`, where the offset is the
    number of earlier requests recorded in the same millisecond. Because the
    value is time-derived it resumes above previous values after a restart
    without any persisted counter. Should the clock step backwards, the
    generator falls back to `last + 1`.
    """

    def __init__(self) -> None:
        self._last: int | None = None

    @property
    def last(self) -> int | None:
        return self._last

    def next(self, timestamp_ms: int, collision_offset: int = 0) -> int:
        nonce = timestamp_ms * NONCE_SCALE + collision_offset
        if self._last is not None and nonce <= self._last:
            nonce = self._last + 1
        self._last = nonce
        return nonce


@dataclass(frozen=True)
class SigningScheme:
    """Per-exchange parameters of the signing protocol.

    Attributes:
        digest: The hashlib algorithm name used for the HMAC.
        body_format: `"form"` sends and signs a urlencoded body with the nonce
            as its first field. `"json_payload"` sends a JSON body carrying
            the request path and nonce, and signs its base64 encoding.
        key_header: Header carrying the public API key.
        sign_header: Header carrying the hex signature.
        payload_header: Header carrying the base64 payload, if any.
    """

    digest: str = "sha512"
    body_format: Literal["form", "json_payload"] = "form"
    key_header: str = "Key"
    sign_header: str = "Sign"
    payload_header: str | None = None


POLONIEX_SCHEME = SigningScheme()

BITFINEX_SCHEME = SigningScheme(
    digest="sha384",
    body_format="json_payload",
    key_header="X-BFX-APIKEY",
    sign_header="X-BFX-SIGNATURE",
    payload_header="X-BFX-PAYLOAD",
)


def encode_form(fields: Mapping[str, object]) -> str:
    """Urlencodes fields in insertion order, with spaces as `%20`."""
    return urlencode(
        [(k, v) for k, v in fields.items() if v is not None], quote_via=quote
    )


def sign(message: bytes, secret: str, digest: str = "sha512") -> str:
    """Returns the hex HMAC of `message` keyed by `secret`."""
    return hmac.new(secret.encode("utf-8"), message, getattr(hashlib, digest)).hexdigest()


class SignedRequestBuilder:
    """Builds signed POST requests for one trading endpoint."""

    def __init__(
        self,
        url: str,
        scheme: SigningScheme = POLONIEX_SCHEME,
        user_agent: str = "cryptoexchange",
        nonce_generator: NonceGenerator | None = None,
    ) -> None:
        """Initializes the builder.

        Args:
            url: The trading endpoint base URL.
            scheme: The exchange's signing parameters.
            user_agent: Value of the `User-Agent` header.
            nonce_generator: Source of nonces. One generator must be shared
                by every request made with the same credentials.
        """
        if not hasattr(hashlib, scheme.digest):
            err_msg = f"Unsupported digest algorithm: {scheme.digest}"
            raise ValueError(err_msg)
        self.url = url
        self.scheme = scheme
        self.user_agent = user_agent
        self.nonces = nonce_generator or NonceGenerator()

    def encode_body(
        self, path: str, command: Mapping[str, str], nonce: int
    ) -> tuple[bytes, bytes]:
        """Serializes the command and nonce.

        Returns:
            A tuple of (body bytes to send, message bytes to sign).
        """
        if self.scheme.body_format == "json_payload":
            request_path = urlsplit(self.url + path).path
            payload = {"request": request_path, "nonce": str(nonce)}
            payload.update({k: v for k, v in command.items() if v is not None})
            body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
            return body, base64.b64encode(body)

        fields: dict[str, object] = {"nonce": nonce}
        fields.update(command)
        body = encode_form(fields).encode("utf-8")
        return body, body

    def build(
        self,
        command: Mapping[str, str],
        credentials: Credentials | None,
        timestamp_ms: int,
        collision_offset: int = 0,
        path: str = "",
    ) -> RequestEnvelope:
        """Builds a signed request.

        Args:
            command: The API command and its parameters, all as strings.
            credentials: The key and secret to sign with.
            timestamp_ms: The current time in epoch milliseconds.
            collision_offset: Earlier requests recorded in this millisecond.
            path: Path appended to the endpoint URL.

        Returns:
            A POST `RequestEnvelope` ready to send.

        Raises:
            MissingCredentials: If no key or secret is available.
        """
        if credentials is None or not credentials.key or not credentials.secret:
            raise MissingCredentials()

        nonce = self.nonces.next(timestamp_ms, collision_offset)
        body, message = self.encode_body(path, command, nonce)

        headers = {
            "User-Agent": self.user_agent,
            "Content-Type": FORM_CONTENT_TYPE,
            "Content-Length": str(len(body)),
            self.scheme.key_header: credentials.key,
        }
        if self.scheme.payload_header:
            headers[self.scheme.payload_header] = message.decode("ascii")
        headers[self.scheme.sign_header] = sign(
            message, credentials.secret, self.scheme.digest
        )

        return RequestEnvelope(
            method="POST",
            url=self.url + path,
            headers=headers,
            body=body,
            nonce=nonce,
        )
