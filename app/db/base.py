# Import every model so relationship() targets resolve and
# Base.metadata is complete (alembic, create_all in tests).
from app.db.session import Base  # noqa: F401
from app.models.user import User  # noqa: F401
from app.models.group import Group  # noqa: F401
from app.models.group_member import GroupMember  # noqa: F401
from app.models.group_invitation import GroupInvitation  # noqa: F401
from app.models.expense import Expense  # noqa: F401
from app.models.expense_split import ExpenseSplit  # noqa: F401
from app.models.settlement import Settlement  # noqa: F401
