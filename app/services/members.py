"""
Lecture des membres dans Supabase (auth + table `members`).
L'authentification elle-même reste gérée par Supabase côté navigateur ;
ici on ne fait que retrouver le membre associé à un jeton d'accès.
"""

import logging
import os
from typing import Dict, Optional

import requests
from dotenv import load_dotenv

from app.models.member import Member

load_dotenv()

logger = logging.getLogger(__name__)

SUPABASE_URL = os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY") or os.getenv("NEXT_PUBLIC_SUPABASE_ANON_KEY")


class SupabaseError(Exception):
    """Exception personnalisée pour les erreurs Supabase."""


def _headers(access_token: str) -> Dict[str, str]:
    return {
        "apikey": SUPABASE_ANON_KEY or "",
        "Authorization": f"Bearer {access_token}",
        "Accept": "application/json",
    }


def _get(path: str, access_token: str, **kwargs):
    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        raise SupabaseError("Supabase not configured")

    try:
        response = requests.get(f"{SUPABASE_URL}{path}", headers=_headers(access_token), timeout=10, **kwargs)
    except requests.RequestException as exc:
        logger.error("Supabase request failed: %s", exc)
        raise SupabaseError(str(exc)) from exc

    if response.status_code in (401, 403):
        return None
    if not response.ok:
        logger.error("Supabase API error %s: %s", response.status_code, response.text[:400])
        raise SupabaseError(f"Supabase API error {response.status_code}")
    return response.json()


def get_member_for_token(access_token: str) -> Optional[Member]:
    """
    Retourne le membre lié au jeton d'accès Supabase, ou None si le jeton
    est invalide ou si aucun membre n'est rattaché à l'utilisateur.
    """
    user = _get("/auth/v1/user", access_token)
    if not user or not user.get("id"):
        return None

    rows = _get(
        "/rest/v1/members",
        access_token,
        params={"auth_user_id": f"eq.{user['id']}", "select": "*", "limit": 1},
    )
    if not rows:
        logger.warning(f"No member row for auth user {user['id']}")
        return None
    return Member.model_validate(rows[0])
