from modules.localization.stats.service import CompletenessService

__all__ = ["CompletenessService"]
