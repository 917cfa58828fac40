"""Client endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Response

from ..models import Client
from ..schemas import ClientCreate, ClientRead, ClientUpdate
from ..services import clients
from ..services.abbreviation import client_abbreviation

router = APIRouter(prefix="/clients", tags=["clients"])


def _client_to_schema(client: Client) -> ClientRead:
    return ClientRead(
        id=client.id,
        name=client.name,
        email=client.email,
        phone=client.phone,
        address=client.address,
        country=client.country,
        abbreviation=client_abbreviation(client.name),
        created_at=client.created_at,
    )


@router.get("", response_model=list[ClientRead])
def list_clients() -> list[ClientRead]:
    return [_client_to_schema(client) for client in clients.list_clients()]


@router.post("", response_model=ClientRead, status_code=201)
def create_client(payload: ClientCreate) -> ClientRead:
    return _client_to_schema(clients.create_client(payload))


@router.get("/{client_id}", response_model=ClientRead)
def get_client(client_id: int) -> ClientRead:
    return _client_to_schema(clients.get_client(client_id))


@router.put("/{client_id}", response_model=ClientRead)
def update_client(client_id: int, payload: ClientUpdate) -> ClientRead:
    return _client_to_schema(clients.update_client(client_id, payload))


@router.delete("/{client_id}", status_code=204)
def delete_client(client_id: int) -> Response:
    clients.delete_client(client_id)
    return Response(status_code=204)
