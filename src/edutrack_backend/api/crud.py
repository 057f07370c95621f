import logging
from enum import Enum
from typing import Annotated, Any, Optional, Type
from fastapi import Query as QueryParam
from pydantic import BaseModel
from sqlalchemy import and_, or_, exc
from sqlalchemy.orm import Query, Session

from edutrack_backend.api.exceptions import BadRequestException, InternalServerException
from edutrack_backend.interface.base import Page, PageQuery
from edutrack_backend.model.base import utcnow
from edutrack_backend.settings import settings

logger = logging.getLogger(__name__)


def paginate(query: Query, db_type: Any, params: PageQuery, response_type: Type[BaseModel], order_column: Optional[Any] = None) -> Page:
    """Cursor pagination ordered by (creation timestamp, id).

    lastDoc is the id of the final item of the previous page and must
    belong to the same filtered result set.
    """
    order_column = order_column if order_column is not None else db_type.created_at

    if params.last_doc is not None:
        cursor = query.with_entities(order_column, db_type.id).filter(db_type.id == params.last_doc).first()

        if cursor is None:
            raise BadRequestException(detail=f"Invalid cursor [{params.last_doc}]")

        cursor_value, cursor_id = cursor
        query = query.filter(or_(
            order_column > cursor_value,
            and_(order_column == cursor_value, db_type.id > cursor_id)
        ))

    rows = query.order_by(order_column.asc(), db_type.id.asc()).limit(params.page_size + 1).all()

    has_more = len(rows) > params.page_size
    rows = rows[:params.page_size]

    return Page[response_type](
        items=[response_type.model_validate(row, from_attributes=True) for row in rows],
        next_cursor=rows[-1].id if has_more else None
    )


def create_db(db: Session, db_item: Any) -> Any:
    try:
        db.add(db_item)
        db.commit()
        db.refresh(db_item)
        return db_item
    except exc.IntegrityError as e:
        db.rollback()
        logger.warning(f"Constraint violation on {type(db_item).__name__}: {e.orig if hasattr(e, 'orig') else e}")
        raise BadRequestException(detail="Constraint violation")
    except exc.SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create {type(db_item).__name__}: {e}")
        raise InternalServerException(detail="Document store write failed")


def update_db(db: Session, db_item: Any, entity: Any) -> Any:
    """Merge set fields of entity into db_item and stamp updated_at."""
    if isinstance(entity, BaseModel):
        entity = entity.model_dump(exclude_unset=True)

    try:
        for key, attr in entity.items():
            if isinstance(attr, Enum):
                attr = attr.value
            setattr(db_item, key, attr)

        if hasattr(db_item, "updated_at"):
            db_item.updated_at = utcnow()

        db.commit()
        db.refresh(db_item)
        return db_item

    except exc.IntegrityError as e:
        db.rollback()
        logger.warning(f"Constraint violation on {type(db_item).__name__}: {e.orig if hasattr(e, 'orig') else e}")
        raise BadRequestException(detail="Constraint violation")
    except exc.SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update {type(db_item).__name__} {getattr(db_item, 'id', None)}: {e}")
        raise InternalServerException(detail="Document store write failed")


def archive_db(db: Session, db_item: Any, field: str = "archived_at") -> Any:
    return update_db(db, db_item, {field: utcnow()})


def page_params(
    page_size: Annotated[int, QueryParam(alias="pageSize", ge=1, le=settings.MAX_PAGE_SIZE)] = settings.DEFAULT_PAGE_SIZE,
    last_doc: Annotated[Optional[str], QueryParam(alias="lastDoc")] = None
) -> PageQuery:
    return PageQuery(page_size=page_size, last_doc=last_doc)
