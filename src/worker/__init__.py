"""Background workers for the credit service"""
from .credit_auditor import CreditAuditorWorker

__all__ = ["CreditAuditorWorker"]
