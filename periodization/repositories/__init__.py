"""Repositories package."""
from periodization.repositories.base import Repository
from periodization.repositories.coaching_repository import CoachingRepository
from periodization.repositories.performance_repository import PerformanceRepository
from periodization.repositories.selection_repository import SelectionRepository
from periodization.repositories.subscription_repository import SubscriptionRepository
from periodization.repositories.template_repository import TemplateRepository

__all__ = [
    "Repository",
    "CoachingRepository",
    "PerformanceRepository",
    "SelectionRepository",
    "SubscriptionRepository",
    "TemplateRepository",
]
