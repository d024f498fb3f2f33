from infra.storage.sql_fallback_store import SqlFallbackStore

__all__ = ["SqlFallbackStore"]
