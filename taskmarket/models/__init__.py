from .user import User
from .task import Task
from .proposal import Proposal
from .notification import Notification
from .payment import Payment
