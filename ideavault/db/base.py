# Import all the models, so that Base has them before being
# imported by Alembic
from ideavault.models.base_import import Base  # noqa
from ideavault.models.cluster_model import Cluster  # noqa
from ideavault.models.note_model import Note  # noqa
from ideavault.models.task_job_model import TaskJob  # noqa
