"""
Request orchestration.

- orchestrator.py: RequestOrchestrator (classify, quota, identity issuance)
"""

from classification_proxy.orchestrator.orchestrator import RequestOrchestrator

__all__ = ["RequestOrchestrator"]
