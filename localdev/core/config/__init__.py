from localdev.core.config.loader import LocaldevSettings, load_settings

__all__ = ["LocaldevSettings", "load_settings"]
