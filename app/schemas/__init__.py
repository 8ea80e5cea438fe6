from .common import Envelope
from .user import UserPayload, UserOut
from .task import TaskPayload, TaskOut
