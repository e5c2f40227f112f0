from ghrules_infra.logging.audit import AuditLogger

__all__ = ["AuditLogger"]
