"""Avatar signing for user hits.

Stored avatar references point into private object-storage buckets and
must be exchanged for short-lived signed URLs before leaving the server.

Accepted reference forms:
- https://<host>/storage/v1/object/public/<bucket>/<path>
- https://<host>/storage/v1/object/sign/<bucket>/<path>?token=...
- <bucket>/<path> for a signable bucket
- avatars/..., covers/..., activities/..., users/... (default bucket)

data: URLs, foreign URLs and unrecognised paths pass through unchanged.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol
from urllib.parse import quote, unquote, urlsplit

import httpx
from blog_search_common import Settings, SigningError, get_logger

logger = get_logger(__name__)

ACTIVITY_IMAGES_BUCKET = "activity-images"
POST_IMAGES_BUCKET = "post-images"
DEFAULT_BUCKET = ACTIVITY_IMAGES_BUCKET
SIGNABLE_BUCKETS = frozenset({ACTIVITY_IMAGES_BUCKET, POST_IMAGES_BUCKET})
DEFAULT_BUCKET_PREFIXES = ("avatars/", "covers/", "activities/", "users/")

DEFAULT_EXPIRES_IN_SECONDS = 3600
CACHE_MARGIN_SECONDS = 5
CACHE_MAX_ENTRIES = 500


@dataclass(frozen=True)
class StorageTarget:
    """Object location inside the storage service."""

    bucket: str
    path: str


def parse_storage_target(
    ref: Optional[str], default_bucket: str = DEFAULT_BUCKET
) -> Optional[StorageTarget]:
    """Resolve a stored reference to a bucket and object path.

    Returns:
        StorageTarget, or None when the reference is not a storage object

    Example:
        >>> parse_storage_target("avatars/u1/me.png")
        StorageTarget(bucket='activity-images', path='avatars/u1/me.png')
        >>> parse_storage_target("data:image/png;base64,AAAA") is None
        True
    """
    if not ref or ref.startswith("data:"):
        return None

    normalized = ref.lstrip("/")

    if not normalized.startswith("http"):
        bucket, _, path = normalized.partition("/")
        if bucket in SIGNABLE_BUCKETS:
            return StorageTarget(bucket, path) if path else None
        if normalized.startswith(f"{default_bucket}/"):
            return StorageTarget(default_bucket, normalized[len(default_bucket) + 1 :])
        if normalized.startswith(DEFAULT_BUCKET_PREFIXES):
            return StorageTarget(default_bucket, normalized)
        if default_bucket != DEFAULT_BUCKET:
            return StorageTarget(default_bucket, normalized)
        return None

    segments = [segment for segment in urlsplit(normalized).path.split("/") if segment]
    if "object" not in segments:
        return None

    # /storage/v1/object/{public|sign}/{bucket}/{...path}
    index = segments.index("object")
    bucket = segments[index + 2] if len(segments) > index + 2 else ""
    path = unquote("/".join(segments[index + 3 :]))
    if not bucket or not path:
        return None
    return StorageTarget(bucket, path)


class AvatarSigner(Protocol):
    """Turns a stored avatar reference into a client-usable URL."""

    async def sign(self, ref: Optional[str]) -> Optional[str]:
        ...


class PassthroughSigner:
    """Returns references unchanged (no storage service configured)."""

    async def sign(self, ref: Optional[str]) -> Optional[str]:
        return ref


@dataclass
class _CacheEntry:
    value: str
    expires_at: float


class StorageAvatarSigner:
    """Signs avatar references through the storage REST API.

    Signed URLs are cached in memory until CACHE_MARGIN_SECONDS before they
    expire, and concurrent requests for the same object share one call.

    Example:
        >>> async with StorageAvatarSigner("https://xyz.supabase.co", key) as signer:
        ...     url = await signer.sign("avatars/u1/me.png")

    Attributes:
        base_url: Storage service base URL
        expires_in: Lifetime of issued URLs in seconds
        default_bucket: Bucket for bare object paths
    """

    def __init__(
        self,
        base_url: str,
        service_key: str,
        *,
        expires_in: int = DEFAULT_EXPIRES_IN_SECONDS,
        default_bucket: str = DEFAULT_BUCKET,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.expires_in = expires_in
        self.default_bucket = default_bucket
        self._clock = clock
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {service_key}",
                "apikey": service_key,
            },
            timeout=httpx.Timeout(timeout_seconds),
        )
        self._cache: dict[str, _CacheEntry] = {}
        self._in_flight: dict[str, asyncio.Task] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> AvatarSigner:
        """Storage signer when storage is configured, else passthrough."""
        if not settings.avatar_signing_configured:
            logger.info("avatar_signing_disabled")
            return PassthroughSigner()
        if settings.avatar_bucket not in SIGNABLE_BUCKETS:
            # Bare avatar paths resolve to this bucket and are then left unsigned
            logger.warning(
                "avatar_bucket_not_signable",
                bucket=settings.avatar_bucket,
                signable=sorted(SIGNABLE_BUCKETS),
            )
        return cls(
            settings.storage_url,
            settings.storage_service_key,
            expires_in=settings.signed_url_ttl_seconds,
            default_bucket=settings.avatar_bucket,
        )

    async def __aenter__(self) -> "StorageAvatarSigner":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this signer created it."""
        if self._owns_client:
            await self._client.aclose()

    def clear_cache(self) -> None:
        self._cache.clear()

    @property
    def _cache_ttl(self) -> float:
        return max(0, self.expires_in - CACHE_MARGIN_SECONDS)

    async def sign(self, ref: Optional[str]) -> Optional[str]:
        """Signed URL for a storage reference; other inputs are returned as-is.

        Raises:
            SigningError: If the storage service refuses or is unreachable
        """
        target = parse_storage_target(ref, self.default_bucket)
        if target is None or target.bucket not in SIGNABLE_BUCKETS:
            return ref

        path = target.path.lstrip("/")
        if path.startswith(f"{target.bucket}/"):
            path = path[len(target.bucket) + 1 :]
        key = f"{target.bucket}:{path}:{self.expires_in}"

        if self._cache_ttl > 0:
            cached = self._cache.get(key)
            if cached and cached.expires_at > self._clock():
                return cached.value

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._create_signed_url(target.bucket, path))
            self._in_flight[key] = task
            task.add_done_callback(lambda _: self._in_flight.pop(key, None))

        signed = await asyncio.shield(task)

        if self._cache_ttl > 0:
            self._store(key, signed)
        return signed

    def _store(self, key: str, value: str) -> None:
        now = self._clock()
        if len(self._cache) >= CACHE_MAX_ENTRIES:
            for stale in [k for k, entry in self._cache.items() if entry.expires_at <= now]:
                del self._cache[stale]
        while len(self._cache) >= CACHE_MAX_ENTRIES:
            # Oldest insertion first
            del self._cache[next(iter(self._cache))]
        self._cache[key] = _CacheEntry(value=value, expires_at=now + self._cache_ttl)

    async def _create_signed_url(self, bucket: str, path: str) -> str:
        endpoint = f"{self.base_url}/storage/v1/object/sign/{bucket}/{quote(path)}"
        try:
            response = await self._client.post(
                endpoint, json={"expiresIn": self.expires_in}
            )
        except httpx.HTTPError as e:
            raise SigningError(f"Signing request failed for {bucket}/{path}: {e}") from e

        if response.status_code != 200:
            raise SigningError(
                f"Storage returned {response.status_code} for {bucket}/{path}"
            )

        signed_path = response.json().get("signedURL")
        if not signed_path:
            raise SigningError(f"No signed URL returned for {bucket}/{path}")

        if signed_path.startswith("http"):
            return signed_path
        return f"{self.base_url}/storage/v1{signed_path}"
