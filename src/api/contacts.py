"""Contact endpoints. Every route is behind the auth gate and scoped to the caller.

Mutations commit through ContactService and then, before responding, push the
resulting change to the caller's realtime connections.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.auth import require_identity
from contactly.application import (
    ContactRemoved,
    ContactService,
    Invalid,
    NotFound,
)
from contactly.domain import ChangeKind, Contact, ContactChangeEvent, Identity, contact_to_dict
from contactly.infrastructure import RealtimeHub

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contacts", tags=["contacts"])


class ContactBody(BaseModel):
    """Create/update payload. For updates only the keys actually sent are applied."""

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    notes: str | None = None


def _service(request: Request) -> ContactService:
    return request.app.state.contact_service


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Contact not found")


async def _publish(request: Request, kind: ChangeKind, contact: Contact) -> None:
    """Emit after commit. A failed emit is logged; it never fails the request."""
    hub: RealtimeHub = request.app.state.hub
    event = ContactChangeEvent(kind=kind, contact=contact, owner_id=contact.owner_id)
    try:
        await hub.emit(event)
    except Exception:
        logger.exception("Realtime emit of %s for contact %s failed", kind.value, contact.id)


@router.get("")
def list_contacts(request: Request, identity: Identity = Depends(require_identity)):
    return [contact_to_dict(c) for c in _service(request).list_contacts(identity)]


@router.get("/{contact_id}")
def get_contact(
    contact_id: str, request: Request, identity: Identity = Depends(require_identity)
):
    result = _service(request).get_contact(identity, contact_id)
    if isinstance(result, NotFound):
        raise _not_found()
    return contact_to_dict(result)


@router.post("")
async def create_contact(
    body: ContactBody, request: Request, identity: Identity = Depends(require_identity)
):
    fields = body.model_dump(exclude_unset=True)
    result = await run_in_threadpool(_service(request).create_contact, identity, fields)
    if isinstance(result, Invalid):
        raise HTTPException(status_code=400, detail=result.reason)
    await _publish(request, ChangeKind.CREATED, result.contact)
    return JSONResponse(content=contact_to_dict(result.contact), status_code=201)


async def _update(request: Request, identity: Identity, contact_id: str, body: ContactBody):
    fields = body.model_dump(exclude_unset=True)
    result = await run_in_threadpool(
        _service(request).update_contact, identity, contact_id, fields
    )
    if isinstance(result, Invalid):
        raise HTTPException(status_code=400, detail=result.reason)
    if isinstance(result, NotFound):
        raise _not_found()
    await _publish(request, ChangeKind.UPDATED, result.contact)
    return contact_to_dict(result.contact)


@router.put("/{contact_id}")
async def update_contact(
    contact_id: str,
    body: ContactBody,
    request: Request,
    identity: Identity = Depends(require_identity),
):
    return await _update(request, identity, contact_id, body)


@router.patch("/{contact_id}")
async def patch_contact(
    contact_id: str,
    body: ContactBody,
    request: Request,
    identity: Identity = Depends(require_identity),
):
    return await _update(request, identity, contact_id, body)


@router.delete("/{contact_id}")
async def delete_contact(
    contact_id: str, request: Request, identity: Identity = Depends(require_identity)
):
    result = await run_in_threadpool(_service(request).delete_contact, identity, contact_id)
    if not isinstance(result, ContactRemoved):
        raise _not_found()
    await _publish(request, ChangeKind.DELETED, result.contact)
    return {"id": result.contact.id, "deleted": True}
