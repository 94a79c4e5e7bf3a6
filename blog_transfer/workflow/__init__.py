from blog_transfer.workflow.base import BaseWorkflow
from blog_transfer.workflow.export import ExportWorkflow
from blog_transfer.workflow.importer import ImportWorkflow
from blog_transfer.workflow.step import WorkflowStep

__all__ = [
    "BaseWorkflow",
    "ExportWorkflow",
    "ImportWorkflow",
    "WorkflowStep",
]
