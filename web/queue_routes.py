"""
Routes exposing login, the distributor controller and the display reader.

Prefixes: /auth, /distributor, /display
"""

from typing import Optional
from urllib.parse import quote, urlencode

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Response, status

from qticket.auth.display_link import authorize_display, build_display_url
from qticket.models.queue_state import Ticket
from qticket.services.distributor import DistributorController, Notice
from .auth_deps import (
    DistributorAuth,
    clear_session_cookie,
    require_distributor,
    set_session_cookie,
)
from .context import ServerContext
from .documents_api import get_context
from .models import DistributorStatus, LoginResponse, NoticeResponse, TicketOut

router = APIRouter(tags=["queue"])


def _distributor_url(queue_name: str, token: str) -> str:
    return f"/distributor/{quote(queue_name, safe='')}?{urlencode({'token': token})}"


def _ticket_out(ctx: ServerContext, queue_name: str, ticket: Optional[Ticket]) -> Optional[TicketOut]:
    if ticket is None:
        return None
    return TicketOut(
        id=ticket.id,
        number=ticket.number,
        issued_at=ticket.issued_at.isoformat(),
        served=ticket.served,
        called_at=ticket.called_at.isoformat() if ticket.called_at else None,
        display_url=build_display_url(ctx.settings.display.link_base_url, queue_name, ticket.number),
    )


def _status(controller: DistributorController) -> DistributorStatus:
    doc = controller.state_store.load()
    return DistributorStatus(
        queue=controller.queue_name,
        next_issued=controller.next_issued,
        calling=controller.calling,
        outstanding=controller.outstanding,
        last_updated=doc.last_updated.isoformat(),
    )


def _notice_response(
    ctx: ServerContext, controller: DistributorController, notice: Notice
) -> NoticeResponse:
    return NoticeResponse(
        message=notice.message,
        level=notice.level,
        ticket=_ticket_out(ctx, controller.queue_name, notice.ticket),
        redirect=notice.redirect,
        status=_status(controller) if notice.redirect is None else None,
    )


# -------------------- /auth --------------------

@router.post("/auth/login", response_model=LoginResponse)
async def login(
    response: Response,
    queue_name: str = Form(..., alias="queueName"),
    password: str = Form(...),
    ctx: ServerContext = Depends(get_context),
):
    """
    Claim or open a queue.

    Request (form-encoded):
        queueName: queue name (Thai/English letters, digits, -, _, spaces)
        password: 4-20 English letters and digits

    Response:
        {"queue": ..., "token": ..., "created": ..., "distributorUrl": ...}
    """
    result = ctx.handshake().login(queue_name, password)
    set_session_cookie(response, ctx, result.session)
    return LoginResponse(
        queue=result.queue_name,
        token=result.token,
        created=result.created,
        distributor_url=_distributor_url(result.queue_name, result.token),
    )


@router.post("/auth/logout")
async def logout(response: Response):
    clear_session_cookie(response)
    return {"success": True}


# -------------------- /distributor --------------------

@router.get("/distributor/{queue_name}", response_model=DistributorStatus)
async def distributor_status(
    queue_name: str,
    auth: DistributorAuth = Depends(require_distributor),
    ctx: ServerContext = Depends(get_context),
):
    return _status(ctx.controller(auth.queue_name, auth.sessions))


@router.post("/distributor/{queue_name}/issue", response_model=NoticeResponse)
async def issue_ticket(
    queue_name: str,
    auth: DistributorAuth = Depends(require_distributor),
    ctx: ServerContext = Depends(get_context),
):
    controller = ctx.controller(auth.queue_name, auth.sessions)
    return _notice_response(ctx, controller, controller.issue_next())


@router.post("/distributor/{queue_name}/call", response_model=NoticeResponse)
async def call_ticket(
    queue_name: str,
    auth: DistributorAuth = Depends(require_distributor),
    ctx: ServerContext = Depends(get_context),
):
    controller = ctx.controller(auth.queue_name, auth.sessions)
    return _notice_response(ctx, controller, controller.call_next())


@router.post("/distributor/{queue_name}/reset", response_model=NoticeResponse)
async def reset_queue(
    queue_name: str,
    confirm: bool = Query(False),
    auth: DistributorAuth = Depends(require_distributor),
    ctx: ServerContext = Depends(get_context),
):
    controller = ctx.controller(auth.queue_name, auth.sessions)
    return _notice_response(ctx, controller, controller.reset_all(lambda _prompt: confirm))


@router.delete("/distributor/{queue_name}", response_model=NoticeResponse)
async def delete_queue(
    queue_name: str,
    response: Response,
    confirm: bool = Query(False),
    auth: DistributorAuth = Depends(require_distributor),
    ctx: ServerContext = Depends(get_context),
):
    controller = ctx.controller(auth.queue_name, auth.sessions)
    notice = controller.delete_queue(lambda _prompt: confirm)
    if notice.redirect:
        clear_session_cookie(response)
        notice.redirect = f"/{notice.redirect}"
    return _notice_response(ctx, controller, notice)


# -------------------- /display --------------------

@router.get("/display")
async def display_for_ticket(
    queue: str = Query(...),
    number: str = Query(...),
    ctx: ServerContext = Depends(get_context),
):
    """Patient view opened from a ticket QR code"""
    queue_name, ticket_number = authorize_display(ctx.credentials, queue, number)
    return ctx.display_reader(queue_name, ticket_number).refresh().to_dict()


@router.get("/display/{queue_name}")
async def public_display(queue_name: str, ctx: ServerContext = Depends(get_context)):
    """Waiting-room banner: the number being called"""
    if ctx.credentials.lookup(queue_name) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Queue not found")
    view = ctx.display_reader(queue_name).refresh()
    return {"queueName": view.queue_name, "calling": view.calling, "banner": view.banner}
