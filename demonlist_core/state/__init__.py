from demonlist_core.state.session import SessionManager, SESSION_TIMEOUT_MS

__all__ = ["SessionManager", "SESSION_TIMEOUT_MS"]
