from cmvcwatch.config.settings import Settings

__all__ = ["Settings"]
