# src/taskboard/services/user_service.py

from logging import LoggerAdapter
from typing import Callable, Optional

from taskboard.base.exceptions import ObjectNotFoundException
from taskboard.base.interfaces import Repository
from taskboard.base.query import QueryBuilder, QueryOptions
from taskboard.base.utils import partial_changes, utcnow
from taskboard.entities.user import (ROLE_USER, ROLES, User, UserCreate,
                                     UserUpdate, UserView, normalize_email)
from taskboard.query.criteria import UserCriteria
from taskboard.query.filtering import FilterBuilder
from taskboard.query.paging import Page
from taskboard.query.profiles import USER_PROFILE
from taskboard.query.service import QueryService

PasswordHasher = Callable[[str], str]
# (plain password, stored hash) -> matches
PasswordVerifier = Callable[[str, str], bool]


def _check_role(role: str) -> str:
    if role not in ROLES:
        raise ValueError(f"Unknown role '{role}'; expected one of {ROLES}")
    return role


class UserService:
    """
    User accounts. Passwords are hashed and verified by the injected
    callables; nothing here knows the hashing scheme.
    """

    def __init__(
        self,
        repository: Repository[User],
        hash_password: PasswordHasher,
        verify_password: PasswordVerifier,
    ):
        self.repository = repository
        self._hash_password = hash_password
        self._verify_password = verify_password
        self.queries = QueryService(repository, USER_PROFILE)

    async def query(
        self, criteria: UserCriteria, logger: LoggerAdapter
    ) -> Page[UserView]:
        page = await self.queries.query(criteria, logger)
        return page.map(UserView.from_user)

    async def get(self, id: str, logger: LoggerAdapter) -> Optional[User]:
        try:
            return await self.repository.get(id, logger)
        except ObjectNotFoundException:
            return None

    async def get_by_email(self, email: str, logger: LoggerAdapter) -> Optional[User]:
        qb = QueryBuilder(User)
        options = qb.filter(qb.fields.email == normalize_email(email)).build()
        try:
            return await self.repository.find_one(logger, options)
        except ObjectNotFoundException:
            return None

    async def create(self, data: UserCreate, logger: LoggerAdapter) -> User:
        """
        Raises:
            KeyAlreadyExistsException: If the email is already registered.
            ValueError: If the role is not a known role.
        """
        now = utcnow()
        user = User(
            name=data.name,
            email=data.email,
            password=self._hash_password(data.password),
            role=_check_role(data.role or ROLE_USER),
            created_at=now,
            updated_at=now,
        )
        logger.info(f"Creating user '{user.email}' with role '{user.role}'")
        return await self.repository.store(user, logger)

    async def update(
        self,
        id: str,
        changes: UserUpdate,
        logger: LoggerAdapter,
        acting_user_email: Optional[str] = None,
    ) -> Optional[User]:
        """
        Apply a partial update. ``last_edited_by_admin`` is stamped only when
        the acting user is an admin and at least one value actually changes.

        Returns:
            The updated user, or None if no user has that ID.
        """
        existing = await self.get(id, logger)
        if existing is None:
            logger.warning(f"User '{id}' not found for update")
            return None

        fields = partial_changes(changes)
        password = fields.pop("password", None)
        if "email" in fields:
            fields["email"] = normalize_email(fields["email"])
        if "role" in fields:
            _check_role(fields["role"])

        updates = {
            name: value
            for name, value in fields.items()
            if getattr(existing, name) != value
        }
        if password:
            updates["password"] = self._hash_password(password)

        now = utcnow()
        if updates and acting_user_email:
            acting_user = await self.get_by_email(acting_user_email, logger)
            if acting_user is not None and acting_user.is_admin:
                updates["last_edited_by_admin"] = now
        updates["updated_at"] = now

        logger.info(
            f"Updating user '{id}' ({sorted(k for k in updates if k != 'password')})"
        )
        return await self.repository.replace(
            existing.model_copy(update=updates), logger
        )

    async def delete(self, id: str, logger: LoggerAdapter) -> bool:
        try:
            await self.repository.delete_one(id, logger)
        except ObjectNotFoundException:
            logger.warning(f"User '{id}' not found for deletion")
            return False
        return True

    async def verify_password(
        self, email: str, password: str, logger: LoggerAdapter
    ) -> bool:
        user = await self.get_by_email(email, logger)
        if user is None:
            return False
        return self._verify_password(password, user.password)

    async def count(
        self, logger: LoggerAdapter, criteria: Optional[UserCriteria] = None
    ) -> int:
        """Number of users matching the criteria's filters (all users if None)."""
        expression = (
            FilterBuilder(USER_PROFILE).build(criteria) if criteria else None
        )
        return await self.repository.count(logger, QueryOptions(expression=expression))
