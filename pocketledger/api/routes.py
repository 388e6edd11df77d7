from datetime import date, datetime

from fastapi import APIRouter, HTTPException
from loguru import logger

from pocketledger.bot.transport import RecordingTransport
from pocketledger.deps import build_orchestrator, directory, ledger, users
from pocketledger.ledger.periods import end_of_day, start_of_day
from pocketledger.models.schemas import (
    Balance,
    CreateUserRequest,
    DateRange,
    InboundMessage,
    MessageRequest,
    MessageResponse,
    Transaction,
    User,
)

router = APIRouter()


def _date_range(start_date: date | None, end_date: date | None) -> DateRange | None:
    if start_date is None or end_date is None:
        return None
    if start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")
    return DateRange(start=start_of_day(start_date), end=end_of_day(end_date))


@router.get("/health")
def health():
    return {
        "status": "healthy",
        "service": "Pocket Ledger bot",
        "timestamp": datetime.now().isoformat(),
    }


@router.post("/users", response_model=User)
def create_user(request: CreateUserRequest):
    if directory.find(request.phone) is not None:
        raise HTTPException(status_code=409, detail="Phone number already registered")
    user = users.add(User(**request.model_dump()))
    logger.info("Created user #{} ({})", user.id, user.display_name)
    return user


@router.get("/users/phone/{phone}", response_model=User)
def get_user_by_phone(phone: str):
    user = directory.find(phone)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/transactions/{user_id}", response_model=list[Transaction])
def list_transactions(
    user_id: int, start_date: date | None = None, end_date: date | None = None
):
    return ledger.get_transactions(user_id, date_range=_date_range(start_date, end_date))


@router.get("/balance/{user_id}", response_model=Balance)
def get_balance(user_id: int, start_date: date | None = None, end_date: date | None = None):
    return ledger.get_balance(user_id, _date_range(start_date, end_date))


@router.post("/messages", response_model=MessageResponse)
async def post_message(request: MessageRequest):
    """Run one text message through the bot and return its reply."""
    logger.info("Message from {}: {}", request.phone, request.text)
    orchestrator = build_orchestrator(RecordingTransport())
    reply = await orchestrator.handle(
        InboundMessage(phone=request.phone, address=request.phone, text=request.text)
    )
    return MessageResponse(reply=reply)
