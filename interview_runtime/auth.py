from fastapi import HTTPException, Request
from jose import JWTError, jwt
import os
import logging
import httpx

logger = logging.getLogger("interview_runtime.auth")

_VERIFY_ID_FIELD = "id"


def _jwt_secret() -> str:
    return str(os.getenv("AUTH_JWT_SECRET") or "").strip()


def _verify_url() -> str:
    return str(os.getenv("AUTH_VERIFY_URL") or "").strip()


def _environment() -> str:
    return str(os.getenv("ENV", "development")).strip().lower()


def _allow_unverified_dev() -> bool:
    return str(os.getenv("ALLOW_UNVERIFIED_JWT_DEV", "false")).strip().lower() in {"1", "true", "yes", "on"}


async def _verify_remote_async(token: str) -> str | None:
    """Ask the identity service who owns the token.

    AUTH_VERIFY_URL answers GET with the bearer token attached; a 200 JSON
    object carrying the caller id under `id` is a verified identity.
    """
    url = _verify_url()
    if not url:
        return None

    try:
        async with httpx.AsyncClient(timeout=6.0) as client:
            response = await client.get(url, headers={"Authorization": f"Bearer {token}"})
    except httpx.HTTPError as exc:
        logger.warning("identity verification request failed | err=%s", exc)
        return None

    if response.status_code != 200:
        return None

    try:
        data = response.json()
    except ValueError:
        return None

    user_id = data.get(_VERIFY_ID_FIELD) if isinstance(data, dict) else None
    return str(user_id) if user_id else None


async def resolve_user_id_from_token_async(token: str) -> str:
    payload = None
    secret = _jwt_secret()
    if secret:
        try:
            payload = jwt.decode(token, secret, algorithms=["HS256"])
        except JWTError:
            raise HTTPException(401, "Invalid token")
    else:
        user_id = await _verify_remote_async(token)
        if user_id:
            payload = {"sub": user_id}
        else:
            if _environment() == "production":
                raise HTTPException(500, "AUTH_JWT_SECRET is not configured")
            if not _allow_unverified_dev():
                raise HTTPException(
                    401,
                    "Token verification unavailable in development; configure AUTH_JWT_SECRET or set ALLOW_UNVERIFIED_JWT_DEV=true",
                )
            try:
                payload = jwt.get_unverified_claims(token)
                logger.warning("ALLOW_UNVERIFIED_JWT_DEV enabled; using unverified token claims in non-production mode")
            except JWTError:
                raise HTTPException(401, "Invalid token")

    user_id = (payload or {}).get("sub")
    if not user_id:
        raise HTTPException(401, "Invalid token")
    return str(user_id)


async def get_user_id_async(request: Request) -> str:
    auth = request.headers.get("Authorization")
    if not auth:
        raise HTTPException(401, "Unauthorized")

    if not auth.startswith("Bearer "):
        raise HTTPException(401, "Unauthorized")

    token = auth.replace("Bearer ", "", 1)
    return await resolve_user_id_from_token_async(token)
