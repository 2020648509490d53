# MIT License
# Copyright (c) 2025 Hashborn

"""
Observability Module

Provides Prometheus metrics for remote state retrieval.
"""

from .metrics import metrics_registry, record_rpc, record_page, record_value

__all__ = ['metrics_registry', 'record_rpc', 'record_page', 'record_value']
