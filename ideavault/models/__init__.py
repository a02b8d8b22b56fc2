from .cluster_model import Cluster
from .note_model import Note
from .task_job_model import TaskJob

__all__ = [
    "Cluster",
    "Note",
    "TaskJob",
]
