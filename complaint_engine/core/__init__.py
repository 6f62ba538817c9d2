from complaint_engine.core.settings import settings, Settings

__all__ = ["settings", "Settings"]
