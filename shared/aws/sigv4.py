"""
SigV4 Request Signing
=====================

AWS Signature Version 4 signing for raw HTTP calls to OpenSearch
Serverless and the Bedrock runtime.

The derivation chain is:
1. Canonical request (method, canonical URI, canonical query string,
   canonical headers, signed header names, body hash)
2. String to sign (algorithm, timestamp, credential scope, request hash)
3. Signing key (HMAC chain over date, region, service, "aws4_request")
4. Signature (HMAC of the string to sign, hex encoded)

Version: 0.1.0
"""

import hashlib
import hmac
from dataclasses import dataclass, field
from datetime import UTC, datetime
from urllib.parse import parse_qsl, quote, urlsplit

from shared.config import settings


ALGORITHM = "AWS4-HMAC-SHA256"
TERMINATOR = "aws4_request"


@dataclass(frozen=True)
class AWSCredentials:
    """Static credentials used to derive signing keys."""

    access_key_id: str
    secret_access_key: str
    session_token: str = ""

    @classmethod
    def from_settings(cls) -> "AWSCredentials":
        """Load credentials from application settings."""
        return cls(
            access_key_id=settings.aws.access_key_id,
            secret_access_key=settings.aws.secret_access_key.get_secret_value(),
            session_token=settings.aws.session_token.get_secret_value(),
        )


@dataclass(frozen=True)
class SignedRequest:
    """Headers for one signed call. Bound to the signing timestamp."""

    headers: dict[str, str]
    canonical_request_digest: str
    signature: str
    credential_scope: str
    signed_headers: str = ""
    amz_date: str = field(default="", repr=False)


def sha256_hex(data: bytes | str) -> str:
    """Hex-encoded SHA-256 digest."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(secret_access_key: str, date_stamp: str, region: str, service: str) -> bytes:
    """Derive the scoped signing key for a date/region/service triple."""
    k_date = _hmac(f"AWS4{secret_access_key}".encode("utf-8"), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, TERMINATOR)


def uri_encode(value: str) -> str:
    """RFC 3986 encoding, leaving only unreserved characters as-is."""
    return quote(value, safe="-_.~")


def model_invocation_paths(model_id: str, action: str) -> tuple[str, str]:
    """
    Build the request path and canonical path for a Bedrock model action.

    The model id is percent-encoded once for the HTTP request path and a
    second time for the path used inside the canonical request.

    Args:
        model_id: Bedrock model identifier (may contain ':' and '/')
        action: Runtime action, e.g. "invoke", "converse", "converse-stream"

    Returns:
        (request_path, canonical_path)
    """
    encoded = uri_encode(model_id)
    request_path = f"/model/{encoded}/{action}"
    canonical_path = f"/model/{uri_encode(encoded)}/{action}"
    return request_path, canonical_path


def canonical_query_string(query: str) -> str:
    """Canonicalize a raw query string: encode, then sort by key and value."""
    if not query:
        return ""
    pairs = parse_qsl(query, keep_blank_values=True)
    encoded = sorted((uri_encode(k), uri_encode(v)) for k, v in pairs)
    return "&".join(f"{k}={v}" for k, v in encoded)


class SigV4Signer:
    """
    Produces SigV4 authorization headers for a method/URL/body.

    Signing is a pure function of its inputs; pass ``now`` to make it
    deterministic.

    Example:
        >>> signer = SigV4Signer(AWSCredentials("AKID", "secret"), "us-east-1")
        >>> signed = signer.sign("POST", url, body, "aoss")
        >>> httpx.post(url, content=body, headers=signed.headers)
    """

    def __init__(self, credentials: AWSCredentials | None = None, region: str | None = None) -> None:
        self.credentials = credentials or AWSCredentials.from_settings()
        self.region = region or settings.aws.region

    def sign(
        self,
        method: str,
        url: str,
        body: bytes | str | None,
        service: str,
        *,
        canonical_path: str | None = None,
        now: datetime | None = None,
    ) -> SignedRequest:
        """
        Sign a request.

        Args:
            method: HTTP method
            url: Full request URL (path already percent-encoded once)
            body: Request body (empty when None)
            service: Signing service name ("aoss", "bedrock", ...)
            canonical_path: Path to use inside the canonical request when it
                differs from the literal request path
            now: Signing time (defaults to current UTC time)

        Returns:
            SignedRequest with headers ready to send
        """
        parsed = urlsplit(url)
        timestamp = (now or datetime.now(UTC)).astimezone(UTC)
        amz_date = timestamp.strftime("%Y%m%dT%H%M%SZ")
        date_stamp = amz_date[:8]

        payload = body if body is not None else b""
        body_hash = sha256_hex(payload)

        headers = {
            "content-type": "application/json",
            "host": parsed.netloc,
            "x-amz-content-sha256": body_hash,
            "x-amz-date": amz_date,
        }
        if self.credentials.session_token:
            headers["x-amz-security-token"] = self.credentials.session_token

        sorted_names = sorted(headers)
        canonical_headers = "\n".join(f"{name}:{headers[name].strip()}" for name in sorted_names)
        signed_headers = ";".join(sorted_names)

        canonical_uri = canonical_path or parsed.path or "/"
        if not canonical_uri.startswith("/"):
            canonical_uri = "/" + canonical_uri

        canonical_request = "\n".join(
            [
                method.upper(),
                canonical_uri,
                canonical_query_string(parsed.query),
                canonical_headers + "\n",
                signed_headers,
                body_hash,
            ]
        )
        canonical_digest = sha256_hex(canonical_request)

        credential_scope = f"{date_stamp}/{self.region}/{service}/{TERMINATOR}"
        string_to_sign = "\n".join([ALGORITHM, amz_date, credential_scope, canonical_digest])

        signing_key = derive_signing_key(
            self.credentials.secret_access_key,
            date_stamp,
            self.region,
            service,
        )
        signature = hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()

        headers["authorization"] = (
            f"{ALGORITHM} Credential={self.credentials.access_key_id}/{credential_scope}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )

        return SignedRequest(
            headers=headers,
            canonical_request_digest=canonical_digest,
            signature=signature,
            credential_scope=credential_scope,
            signed_headers=signed_headers,
            amz_date=amz_date,
        )
