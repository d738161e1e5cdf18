"""Post-fetch enrichment of user hits (avatar signing)."""

import asyncio

from blog_search_common import get_logger
from blog_search_contracts import UserHit

from blog_search_storage.avatar_signer import AvatarSigner

logger = get_logger(__name__)


async def _sign_one(user: UserHit, signer: AvatarSigner) -> UserHit:
    if not user.avatar_url:
        return user
    try:
        signed = await signer.sign(user.avatar_url)
    except Exception as e:
        # Enrichment failures never fail the search
        logger.warning(
            "avatar_signing_failed",
            user_id=user.id,
            error=str(e),
        )
        return user
    if not signed or signed == user.avatar_url:
        return user
    return user.model_copy(update={"avatar_url": signed})


async def enrich_users(users: list[UserHit], signer: AvatarSigner) -> list[UserHit]:
    """Replace avatar references with signed URLs, preserving order.

    Users whose avatar cannot be signed keep their stored reference.
    """
    if not users:
        return []
    return list(await asyncio.gather(*(_sign_one(user, signer) for user in users)))
