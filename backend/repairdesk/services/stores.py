"""Store adapters translating between table rows and in-memory entities.

Entities are plain dicts keyed in camelCase (the shape the views and JSON clients use);
rows are the SQLAlchemy models with snake_case columns. Each adapter exposes the same
contract::

    store.get_all()           -> list of entities in the store's canonical order
    store.get(id)             -> entity or NotFoundError
    store.create(fields)      -> populated entity (identity assigned by the adapter/store)
    store.update(id, patch)   -> entity after a sparse patch
    store.delete(id)          -> None; NotFoundError when the id is already gone

Adapters own no cached state; every call opens (or reuses) the thread's scoped session and
commits before returning. All failures surface as ``StoreError`` variants after the session
has been rolled back.
"""
from __future__ import annotations
import logging
from functools import wraps
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, OperationalError, InterfaceError, SQLAlchemyError

from repairdesk import get_db
from repairdesk.errors import StoreError, NotFoundError, ConstraintError, ConnectivityError
from repairdesk.models.customer import Customer
from repairdesk.models.technician import Technician
from repairdesk.models.repair_ticket import RepairTicket, TicketSequence
from repairdesk.utils.timestamps import utcnow, to_iso

logger = logging.getLogger(__name__)

UNKNOWN_CUSTOMER = 'Unknown Customer'
TICKET_SEQUENCE_NAME = 'tickets'


def store_operation(operation: str):
    """Wrap an adapter method so driver failures become StoreError variants.

    The session is rolled back and the failure logged before the translated error is raised.
    """
    def outer(fn):
        @wraps(fn)
        def wrapper(self, *args, **kwargs):
            session = self.session()
            try:
                return fn(self, session, *args, **kwargs)
            except StoreError as e:
                session.rollback()
                e.entity = e.entity or self.entity
                e.operation = e.operation or operation
                logger.error('Error %s %s: %s', operation, self.entity, e.message)
                raise
            except IntegrityError as e:
                session.rollback()
                logger.error('Error %s %s: %s', operation, self.entity, e.orig)
                raise ConstraintError(f"{self.entity} {operation} violates a store constraint: {e.orig}",
                                      entity=self.entity, operation=operation) from e
            except (OperationalError, InterfaceError) as e:
                session.rollback()
                logger.error('Error %s %s: %s', operation, self.entity, e.orig)
                raise ConnectivityError(f"data store unreachable during {self.entity} {operation}",
                                        entity=self.entity, operation=operation) from e
            except SQLAlchemyError as e:
                session.rollback()
                logger.error('Error %s %s: %s', operation, self.entity, e)
                raise StoreError(f"{self.entity} {operation} rejected by the data store",
                                 entity=self.entity, operation=operation) from e
        return wrapper
    return outer


class EntityStore:
    entity = 'entity'
    model: Any = None
    # camelCase entity key -> snake_case column, for keys a caller may write
    CREATE_FIELDS: Dict[str, str] = {}
    UPDATE_FIELDS: Dict[str, str] = {}

    def __init__(self, session_factory: Optional[Callable[[], Any]] = None):
        self._session_factory = session_factory or get_db

    def session(self):
        return self._session_factory()

    # -- mapping helpers --

    @staticmethod
    def to_columns(fields: Dict[str, Any], field_map: Dict[str, str]) -> Dict[str, Any]:
        """Rename the writable keys present in ``fields``; everything else is dropped."""
        return {field_map[k]: v for k, v in fields.items() if k in field_map}

    def to_entity(self, row) -> Dict[str, Any]:
        raise NotImplementedError

    def _require(self, session, entity_id):
        row = session.get(self.model, entity_id, populate_existing=True)
        if row is None:
            raise NotFoundError(f"{self.entity} {entity_id} not found", entity=self.entity)
        return row

    # -- contract --

    def _ordering(self) -> Iterable:
        return (self.model.created_at.desc(),)

    @store_operation('fetch')
    def get_all(self, session) -> List[Dict[str, Any]]:
        stmt = select(self.model).order_by(*self._ordering()).execution_options(populate_existing=True)
        rows = session.execute(stmt).unique().scalars().all()
        return [self.to_entity(r) for r in rows]

    @store_operation('fetch')
    def get(self, session, entity_id) -> Dict[str, Any]:
        return self.to_entity(self._require(session, entity_id))

    @store_operation('create')
    def create(self, session, fields: Dict[str, Any]) -> Dict[str, Any]:
        row = self.model(**self.to_columns(fields, self.CREATE_FIELDS))
        session.add(row)
        session.commit()
        return self.to_entity(row)

    @store_operation('update')
    def update(self, session, entity_id, patch: Dict[str, Any]) -> Dict[str, Any]:
        row = self._require(session, entity_id)
        for column, value in self.to_columns(patch, self.UPDATE_FIELDS).items():
            setattr(row, column, value)
        self.before_update(session, row, patch)
        row.updated_at = utcnow()
        session.commit()
        self.after_write(session, row)
        return self.to_entity(row)

    @store_operation('delete')
    def delete(self, session, entity_id) -> None:
        row = self._require(session, entity_id)
        session.delete(row)
        session.commit()
        self.after_delete(session)

    # -- hooks --

    def before_update(self, session, row, patch):
        pass

    def after_write(self, session, row):
        pass

    def after_delete(self, session):
        pass


class CustomerStore(EntityStore):
    entity = 'customer'
    model = Customer
    CREATE_FIELDS = {'name': 'name', 'email': 'email', 'phone': 'phone', 'address': 'address'}
    UPDATE_FIELDS = CREATE_FIELDS

    def to_entity(self, row: Customer) -> Dict[str, Any]:
        return {
            'id': row.id,
            'name': row.name,
            'email': row.email,
            'phone': row.phone,
            'address': row.address,
            'createdAt': to_iso(row.created_at),
        }


class TechnicianStore(EntityStore):
    entity = 'technician'
    model = Technician
    CREATE_FIELDS = {'name': 'name', 'email': 'email', 'specialties': 'specialties'}
    UPDATE_FIELDS = CREATE_FIELDS

    def _ordering(self):
        return (Technician.name.asc(), Technician.id.asc())

    def _active_counts(self, session, technician_ids=None) -> Dict[str, int]:
        stmt = (
            select(RepairTicket.technician_id, func.count(RepairTicket.id))
            .where(RepairTicket.technician_id.is_not(None))
            .where(RepairTicket.status.not_in(RepairTicket.CLOSED_STATUSES))
            .group_by(RepairTicket.technician_id)
        )
        if technician_ids is not None:
            stmt = stmt.where(RepairTicket.technician_id.in_(list(technician_ids)))
        return {tech_id: int(count) for tech_id, count in session.execute(stmt).all()}

    def to_entity(self, row: Technician, active_tickets: int = 0) -> Dict[str, Any]:
        return {
            'id': row.id,
            'name': row.name,
            'email': row.email,
            'specialties': list(row.specialties or []),
            'activeTickets': active_tickets,
        }

    @store_operation('fetch')
    def get_all(self, session) -> List[Dict[str, Any]]:
        stmt = select(Technician).order_by(*self._ordering()).execution_options(populate_existing=True)
        rows = session.execute(stmt).scalars().all()
        counts = self._active_counts(session)
        return [self.to_entity(r, counts.get(r.id, 0)) for r in rows]

    @store_operation('fetch')
    def get(self, session, entity_id) -> Dict[str, Any]:
        row = self._require(session, entity_id)
        return self.to_entity(row, self._active_counts(session, [row.id]).get(row.id, 0))

    @store_operation('create')
    def create(self, session, fields: Dict[str, Any]) -> Dict[str, Any]:
        columns = self.to_columns(fields, self.CREATE_FIELDS)
        columns['specialties'] = list(columns.get('specialties') or [])
        row = Technician(**columns)
        session.add(row)
        session.commit()
        return self.to_entity(row, 0)

    @store_operation('update')
    def update(self, session, entity_id, patch: Dict[str, Any]) -> Dict[str, Any]:
        row = self._require(session, entity_id)
        for column, value in self.to_columns(patch, self.UPDATE_FIELDS).items():
            setattr(row, column, list(value or []) if column == 'specialties' else value)
        row.updated_at = utcnow()
        session.commit()
        return self.to_entity(row, self._active_counts(session, [row.id]).get(row.id, 0))

    def after_delete(self, session):
        # tickets.technician_id was nulled by the store (ON DELETE SET NULL)
        session.expire_all()


def parse_ticket_number(ticket_id: Optional[str]) -> Optional[int]:
    """Numeric suffix of ``RPR-007`` style ids, or None when it does not parse."""
    if not ticket_id or '-' not in ticket_id:
        return None
    try:
        return int(ticket_id.split('-', 1)[1])
    except ValueError:
        return None


def format_ticket_id(number: int) -> str:
    return f"{RepairTicket.ID_PREFIX}-{number:03d}"


def apply_completion_stamp(row: RepairTicket, status: str, now) -> None:
    """Keep completed_at consistent with a status that was just written."""
    if status == RepairTicket.STATUS_COMPLETED:
        row.completed_at = now
    elif status in RepairTicket.PICKUP_STATUSES:
        if row.completed_at is None:
            row.completed_at = now
    elif status in RepairTicket.OPEN_WORKFLOW_STATUSES:
        row.completed_at = None
    # cancelled keeps whatever completion time the ticket had


class TicketStore(EntityStore):
    entity = 'ticket'
    model = RepairTicket
    UPDATE_FIELDS = {
        'customerId': 'customer_id',
        'deviceType': 'device_type',
        'deviceModel': 'device_model',
        'serialNumber': 'serial_number',
        'issueDescription': 'issue_description',
        'estimatedCost': 'estimated_cost',
        'actualCost': 'actual_cost',
        'status': 'status',
        'priority': 'priority',
        'grade': 'grade',
        'gradeNotes': 'grade_notes',
        'technicianId': 'technician_id',
        'images': 'images',
    }
    CREATE_FIELDS = UPDATE_FIELDS

    def _ordering(self):
        return (RepairTicket.created_at.desc(), RepairTicket.id.desc())

    def to_entity(self, row: RepairTicket) -> Dict[str, Any]:
        return {
            'id': row.id,
            'customerId': row.customer_id,
            'customerName': row.customer.name if row.customer is not None else UNKNOWN_CUSTOMER,
            'deviceType': row.device_type,
            'deviceModel': row.device_model,
            'serialNumber': row.serial_number,
            'issueDescription': row.issue_description,
            'estimatedCost': row.estimated_cost,
            'actualCost': row.actual_cost,
            'status': row.status,
            'priority': row.priority,
            'grade': row.grade,
            'gradeNotes': row.grade_notes,
            'technicianId': row.technician_id,
            'technicianName': row.technician.name if row.technician is not None else None,
            'images': list(row.images or []),
            'createdAt': to_iso(row.created_at),
            'updatedAt': to_iso(row.updated_at),
            'completedAt': to_iso(row.completed_at),
        }

    def next_ticket_id(self, session) -> str:
        """Read-increment of the newest ticket id, floored by the persisted high-water mark.

        Not guarded against concurrent creations: two writers can compute the same id and
        the second insert then fails on the primary key.
        """
        last_id = session.execute(
            select(RepairTicket.id).order_by(*self._ordering()).limit(1)
        ).scalar_one_or_none()
        last_number = parse_ticket_number(last_id)
        number = last_number + 1 if last_number is not None else 1
        seq = session.get(TicketSequence, TICKET_SEQUENCE_NAME)
        if seq is None:
            seq = TicketSequence(name=TICKET_SEQUENCE_NAME, last_number=0)
            session.add(seq)
        number = max(number, (seq.last_number or 0) + 1)
        seq.last_number = number
        return format_ticket_id(number)

    @store_operation('create')
    def create(self, session, fields: Dict[str, Any]) -> Dict[str, Any]:
        columns = self.to_columns(fields, self.CREATE_FIELDS)
        columns['images'] = list(columns.get('images') or [])
        row = RepairTicket(id=self.next_ticket_id(session), **columns)
        now = utcnow()
        row.created_at = now
        row.updated_at = now
        # completion time follows the initial status; callers cannot supply it
        apply_completion_stamp(row, row.status, now)
        session.add(row)
        session.commit()
        logger.info('Created ticket %s for customer %s', row.id, row.customer_id)
        self.after_write(session, row)
        return self.to_entity(row)

    def before_update(self, session, row, patch):
        if 'images' in patch:
            row.images = list(patch['images'] or [])
        if 'status' in patch:
            apply_completion_stamp(row, patch['status'], utcnow())

    def after_write(self, session, row):
        # names are resolved by join; reload them in case the references changed
        session.expire(row, ['customer', 'technician'])


__all__ = [
    'EntityStore', 'CustomerStore', 'TechnicianStore', 'TicketStore', 'store_operation',
    'parse_ticket_number', 'format_ticket_id', 'apply_completion_stamp', 'UNKNOWN_CUSTOMER',
]
