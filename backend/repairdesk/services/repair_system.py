"""Session-scoped state container for tickets, customers and technicians.

A ``RepairSystem`` holds the authoritative in-memory collections for one session and routes
every mutation through the store adapters::

    with RepairSystem() as system:
        system.load()
        if system.error:
            ...  # show the error screen instead of the data views
        ticket = system.create_ticket({...})

Local collections change only after the store confirmed a write (prepend on create, replace by
id on update, remove by id on delete). Renaming a customer or technician re-projects the name
onto local tickets that reference it. Store failures are logged and re-raised unchanged with
the collections left as they were.

In the web layer one system is built per request and kept on ``flask.g``; the app factory
closes it on app-context teardown.
"""
from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from flask import g, current_app, abort

from repairdesk import remove_db_session
from repairdesk.config.settings import DEFAULT_LOAD_WORKERS
from repairdesk.errors import StoreError
from repairdesk.services.analytics import count_active_by_technician
from repairdesk.services.stores import TicketStore, CustomerStore, TechnicianStore

logger = logging.getLogger(__name__)

Entity = Dict[str, Any]


class RepairSystem:
    def __init__(self, ticket_store: Optional[TicketStore] = None, customer_store: Optional[CustomerStore] = None,
                 technician_store: Optional[TechnicianStore] = None, load_workers: int = DEFAULT_LOAD_WORKERS):
        self.ticket_store = ticket_store or TicketStore()
        self.customer_store = customer_store or CustomerStore()
        self.technician_store = technician_store or TechnicianStore()
        self.load_workers = max(1, int(load_workers))
        self.tickets: List[Entity] = []
        self.customers: List[Entity] = []
        self.technicians: List[Entity] = []
        self.loading = False
        self.loaded = False
        self.error: Optional[str] = None
        self.closed = False

    # -- lifecycle --

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self):
        self.tickets, self.customers, self.technicians = [], [], []
        self.loaded = False
        self.closed = True

    def _ensure_open(self):
        if self.closed:
            raise RuntimeError('RepairSystem is closed')

    @staticmethod
    def _fetch(fetch: Callable[[], List[Entity]]) -> List[Entity]:
        try:
            return fetch()
        finally:
            # worker threads own their scoped session; release it with the thread's task
            remove_db_session()

    def load(self) -> bool:
        """Fetch all three collections concurrently; all or nothing.

        Returns True on success. On failure ``error`` carries the message and every
        collection is empty.
        """
        self._ensure_open()
        self.loading = True
        self.error = None
        try:
            with ThreadPoolExecutor(max_workers=self.load_workers, thread_name_prefix='repairdesk-load') as pool:
                futures = {
                    'tickets': pool.submit(self._fetch, self.ticket_store.get_all),
                    'customers': pool.submit(self._fetch, self.customer_store.get_all),
                    'technicians': pool.submit(self._fetch, self.technician_store.get_all),
                }
                results = {name: f.result() for name, f in futures.items()}
        except StoreError as e:
            logger.error('Error loading repair data: %s', e.message)
            self.tickets, self.customers, self.technicians = [], [], []
            self.loaded = False
            self.error = f"Failed to load data: {e.message}"
            return False
        finally:
            self.loading = False
        self.tickets = results['tickets']
        self.customers = results['customers']
        self.technicians = results['technicians']
        self.loaded = True
        return True

    # -- reconciliation helpers --

    def _call(self, action: str, fn: Callable, *args):
        self._ensure_open()
        try:
            return fn(*args)
        except StoreError as e:
            logger.error('Error %s: %s', action, e.message)
            raise

    @staticmethod
    def _replace(collection: List[Entity], entity: Entity) -> List[Entity]:
        return [entity if item['id'] == entity['id'] else item for item in collection]

    @staticmethod
    def _remove(collection: List[Entity], entity_id) -> List[Entity]:
        return [item for item in collection if item['id'] != entity_id]

    def _sync_technician_counts(self):
        if not self.loaded:
            return
        counts = count_active_by_technician(self.tickets)
        self.technicians = [dict(t, activeTickets=counts.get(t['id'], 0)) for t in self.technicians]

    def _project_name(self, id_key: str, name_key: str, entity: Entity):
        """Refresh the display name copied onto local tickets that reference ``entity``."""
        self.tickets = [
            dict(t, **{name_key: entity['name']}) if t.get(id_key) == entity['id'] else t
            for t in self.tickets
        ]

    def find(self, collection: str, entity_id) -> Optional[Entity]:
        for item in getattr(self, collection):
            if item['id'] == entity_id:
                return item
        return None

    # -- tickets --

    def create_ticket(self, fields: Entity) -> Entity:
        ticket = self._call('creating ticket', self.ticket_store.create, fields)
        self.tickets = [ticket] + self.tickets
        self._sync_technician_counts()
        logger.info('Ticket %s created', ticket['id'])
        return ticket

    def update_ticket(self, ticket_id: str, patch: Entity) -> Entity:
        ticket = self._call('updating ticket', self.ticket_store.update, ticket_id, patch)
        self.tickets = self._replace(self.tickets, ticket)
        self._sync_technician_counts()
        logger.info('Ticket %s updated (%s)', ticket_id, ', '.join(sorted(patch)) or 'no fields')
        return ticket

    def assign_ticket(self, ticket_id: str, technician_id: Optional[str]) -> Entity:
        return self.update_ticket(ticket_id, {'technicianId': technician_id})

    def delete_ticket(self, ticket_id: str) -> None:
        self._call('deleting ticket', self.ticket_store.delete, ticket_id)
        self.tickets = self._remove(self.tickets, ticket_id)
        self._sync_technician_counts()
        logger.info('Ticket %s deleted', ticket_id)

    # -- customers --

    def create_customer(self, fields: Entity) -> Entity:
        customer = self._call('creating customer', self.customer_store.create, fields)
        self.customers = [customer] + self.customers
        return customer

    def update_customer(self, customer_id: str, patch: Entity) -> Entity:
        customer = self._call('updating customer', self.customer_store.update, customer_id, patch)
        self.customers = self._replace(self.customers, customer)
        self._project_name('customerId', 'customerName', customer)
        return customer

    def delete_customer(self, customer_id: str) -> None:
        # tickets keep the customerName they were last read with
        self._call('deleting customer', self.customer_store.delete, customer_id)
        self.customers = self._remove(self.customers, customer_id)

    # -- technicians --

    def create_technician(self, fields: Entity) -> Entity:
        technician = self._call('creating technician', self.technician_store.create, fields)
        self.technicians = sorted(self.technicians + [technician], key=lambda t: t['name'])
        return technician

    def update_technician(self, technician_id: str, patch: Entity) -> Entity:
        technician = self._call('updating technician', self.technician_store.update, technician_id, patch)
        self.technicians = self._replace(self.technicians, technician)
        self._project_name('technicianId', 'technicianName', technician)
        return technician

    def delete_technician(self, technician_id: str) -> None:
        self._call('deleting technician', self.technician_store.delete, technician_id)
        self.technicians = self._remove(self.technicians, technician_id)
        # the store unassigned the tickets (ON DELETE SET NULL); mirror that locally
        self.tickets = [
            dict(t, technicianId=None, technicianName=None) if t.get('technicianId') == technician_id else t
            for t in self.tickets
        ]


# ---------- Request scoped access ---------- #

def get_request_system() -> RepairSystem:
    """The current request's RepairSystem, built on first use."""
    system = g.get('repair_system')
    if system is None:
        system = RepairSystem(load_workers=current_app.config.get('REPAIRDESK_LOAD_WORKERS', DEFAULT_LOAD_WORKERS))
        g.repair_system = system
    return system


def load_request_system() -> RepairSystem:
    """Loaded RepairSystem for data views; answers 503 with the load error otherwise."""
    system = get_request_system()
    if not system.loaded and not system.load():
        abort(503, description=system.error)
    return system


def close_request_system() -> None:
    system = g.pop('repair_system', None)
    if system is not None:
        system.close()


__all__ = ['RepairSystem', 'get_request_system', 'load_request_system', 'close_request_system']
