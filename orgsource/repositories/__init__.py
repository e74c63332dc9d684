"""Repositories"""
from .organization_repository import ExecutionResult, OrganizationRepository
