from demonlist_core.data.config import SupabaseConfig, load_supabase_config
from demonlist_core.data.supabase_client import SupabaseRestClient

__all__ = ["SupabaseConfig", "load_supabase_config", "SupabaseRestClient"]
