"""Client records."""
from __future__ import annotations

from sqlmodel import Session, select

from ..db import get_session
from ..exceptions import NotFoundError
from ..models import Client
from ..schemas import ClientCreate, ClientUpdate


def require_client(session: Session, client_id: int) -> Client:
    client = session.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client", client_id)
    return client


def list_clients() -> list[Client]:
    with get_session() as session:
        return list(session.exec(select(Client).order_by(Client.name)).all())


def get_client(client_id: int) -> Client:
    with get_session() as session:
        return require_client(session, client_id)


def create_client(payload: ClientCreate) -> Client:
    with get_session() as session:
        client = Client(**payload.model_dump())
        session.add(client)
        session.flush()
        session.refresh(client)
        return client


def update_client(client_id: int, payload: ClientUpdate) -> Client:
    with get_session() as session:
        client = require_client(session, client_id)
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(client, field, value)
        client.touch()
        session.add(client)
        session.flush()
        session.refresh(client)
        return client


def delete_client(client_id: int) -> None:
    """Delete a client. Its invoices stay and keep the now dangling ``client_id``."""

    with get_session() as session:
        client = require_client(session, client_id)
        session.delete(client)
