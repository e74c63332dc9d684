"""Read-side projections"""
from .builder import ProjectionBuilder
from .processor import ProjectionEventProcessor
from .views import OrganizationStatistics, OrganizationView
