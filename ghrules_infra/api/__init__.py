from ghrules_infra.api.client import RuleApiClient

__all__ = ["RuleApiClient"]
