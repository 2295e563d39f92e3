from typing import (
    Any,
    Generic,
    List,
    Optional,
    Sequence,
    Type,
    TypeVar,
)

from sqlalchemy import ColumnExpressionArgument, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.base import ExecutableOption

from clinic.db.base import Base

T = TypeVar("T", bound=Base)


class BaseService(Generic[T]):
    """
    Base service class providing the read and write helpers the stores need.

    Attributes:
        model: SQLAlchemy model class.
    """

    model: Type[T]
    session: AsyncSession

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize the service with an async database session.

        Args:
            session: The SQLAlchemy AsyncSession to use for database operations.

        Raises:
            NotImplementedError: If the service does not define a model.
        """
        self.session = session
        if not hasattr(self, "model"):
            raise NotImplementedError("Service must define a model")

    async def find_one_or_none(
        self,
        options: Optional[List[ExecutableOption]] = None,
        **filter_by: Any,
    ) -> Optional[T]:
        """
        Retrieve a single record matching the given filter criteria.

        Args:
            options: Optional list of SQLAlchemy loader options.
            **filter_by: Field-value filters.

        Returns:
            The model instance if found, otherwise None.
        """
        query = select(self.model).filter_by(**filter_by)
        if options:
            query = query.options(*options)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def find_all_where(
        self,
        *whereclauses: ColumnExpressionArgument[bool],
        options: Optional[List[ExecutableOption]] = None,
        order_by: Optional[List[ColumnExpressionArgument[Any]]] = None,
    ) -> Sequence[T]:
        """
        Retrieve records using complex where conditions.

        Args:
            *whereclauses: SQLAlchemy filter expressions.
            options: Optional list of SQLAlchemy loader options.
            order_by: Optional list of sorting criteria.

        Returns:
            A sequence of matching model instances.
        """
        query = select(self.model).where(*whereclauses)
        if options:
            query = query.options(*options)
        if order_by:
            query = query.order_by(*order_by)

        result = await self.session.execute(query)
        return result.scalars().all()

    async def update_by_model(
        self,
        instance: T,
        **update_data: Any,
    ) -> T:
        """
        Update a model instance directly.

        Args:
            instance: The model instance to update.
            **update_data: Field-value pairs to update.

        Returns:
            The updated model instance.
        """
        for key, value in update_data.items():
            setattr(instance, key, value)
        self.session.add(instance)
        await self.session.flush()
        return instance
