"""Session state and the auth backend client."""

from .session import Session, SessionHolder
from .supabase import SupabaseAuth

__all__ = ["Session", "SessionHolder", "SupabaseAuth"]
