"""Service layer — JSON-facing operations over the mapping core.

Every operation returns :class:`entitymap.services.result.ServiceResult`.
"""
