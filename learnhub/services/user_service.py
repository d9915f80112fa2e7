"""用户服务层。"""

from __future__ import annotations

from learnhub.db import parse_object_id
from learnhub.models import User
from learnhub.services.access_service import Actor


async def get_user_by_id(user_id: str | None) -> User | None:
    object_id = parse_object_id(user_id)
    if object_id is None:
        return None
    return await User.get(object_id)


def to_actor(user: User) -> Actor:
    """将用户记录转换为访问决策所需的主体。"""

    return Actor(id=str(user.id), role=user.role)
