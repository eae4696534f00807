"""External services used by the webhook service."""

from pipelinehub.services.supabase_client import SupabaseClient, get_supabase_client

__all__ = ["SupabaseClient", "get_supabase_client"]
