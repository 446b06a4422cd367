from paperportal.application.services.query_filter import BrowseSpec, FilterSpec
from paperportal.application.services.research_service import ResearchService
from paperportal.application.services.review_action_processor import ReviewActionProcessor
from paperportal.application.services.workflow_engine import Stage, WorkflowEngine

__all__ = [
    "BrowseSpec",
    "FilterSpec",
    "ResearchService",
    "ReviewActionProcessor",
    "Stage",
    "WorkflowEngine",
]
