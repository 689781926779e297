from .user import User
from .tester import Tester
from .invitation import Invitation
from .feedback import Feedback
from .email_log import EmailLog

__all__ = ["User", "Tester", "Invitation", "Feedback", "EmailLog"]
