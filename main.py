from fastapi import FastAPI, APIRouter, Body, Depends, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional
import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

# Local imports
from config import ALLOWED_ORIGINS, DEFAULT_PAGE_SIZE, DEFAULT_SEARCH_PAGE_SIZE, LOG_LEVEL, MAX_PAGE_SIZE, TITLE_MODEL
from database import get_db, engine
from dtos.chat_request import ChatRequest, StartConversationRequest
from errors import ConversationError
from graph import build_graph, open_checkpointer
from models import Base
from schemas import (
    ConversationCreate, TitleUpdate, MessageOut,
    ConversationPage, ConversationSummaryResponse, ConversationDetailResponse,
    StartConversationData, StartConversationResponse, SendMessageResponse, DeleteResponse,
    ErrorResponse,
)
from services import AgentResponder, DirectoryService, MessageService, TitleGenerator

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables if they don't exist
    Base.metadata.create_all(bind=engine)

    async with open_checkpointer() as saver:
        app.state.graph = build_graph().compile(checkpointer=saver)
        app.state.responder = AgentResponder(app.state.graph)
        app.state.title_generator = TitleGenerator.from_model_name(TITLE_MODEL)

        # yield control back to FastAPI; app is now ready
        yield


app = FastAPI(
    title="Conversational Agent Backend",
    version="2.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=3600
)


# Error handling: stable public messages, full detail in the server log
@app.exception_handler(ConversationError)
async def conversation_error_handler(request: Request, exc: ConversationError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"{request.method} {request.url.path} store failure")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Failed to access conversation store"},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info(f"{request.method} {request.url.path} invalid request: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": "Invalid request"},
    )


def get_message_service(request: Request) -> MessageService:
    """Message protocol bound to the agent compiled at startup."""
    return MessageService(
        responder=request.app.state.responder,
        title_generator=request.app.state.title_generator,
    )


@app.get("/")
async def root():
    return {
        "message": "Conversational Agent Backend",
        "version": app.version,
        "features": ["Conversation Management", "Search", "AI Chat"],
        "endpoints": {
            "chat": "POST /api/message",
            "startChat": "POST /api/conversations/start",
            "conversations": "GET /api/conversations",
            "search": "GET /api/conversations/search",
            "health": "GET /health",
        },
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "conversational-agent-backend"}


@app.get("/health/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """Health check including the conversation store."""
    health_status = {
        "status": "healthy",
        "service": "conversational-agent-backend",
        "checks": {}
    }

    try:
        db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = {"status": "healthy", "dialect": engine.dialect.name}
    except SQLAlchemyError as e:
        health_status["checks"]["database"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "unhealthy"

    health_status["checks"]["agent"] = {
        "status": "ready" if getattr(app.state, "responder", None) else "not_started"
    }

    return health_status


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    404: {"model": ErrorResponse, "description": "Conversation not found"},
    500: {"model": ErrorResponse, "description": "Agent or store failure"},
}

api = APIRouter(prefix="/api", responses=ERROR_RESPONSES)


@api.post("/message", response_model=SendMessageResponse)
async def send_message(
    req: ChatRequest,
    db: Session = Depends(get_db),
    messages: MessageService = Depends(get_message_service)
) -> SendMessageResponse:
    """Append a user message to a thread (new when omitted) and return the agent's reply."""
    result = await messages.send(db, req.message, req.thread_id)

    return SendMessageResponse(
        response=result.response,
        thread_id=result.thread_id,
        conversation_id=result.conversation.id,
        message_count=result.message_count,
        conversation_title=result.title,
        is_new_conversation=result.is_new_conversation
    )


@api.post("/conversations/start", response_model=StartConversationResponse)
async def start_conversation(
    req: StartConversationRequest,
    db: Session = Depends(get_db),
    messages: MessageService = Depends(get_message_service)
) -> StartConversationResponse:
    """Create a conversation from its first message and answer it."""
    result = await messages.start(db, req.message, req.title)
    conversation = result.conversation

    return StartConversationResponse(
        data=StartConversationData(
            thread_id=conversation.thread_id,
            conversation_id=conversation.id,
            title=conversation.title,
            message_count=conversation.message_count,
            messages=[MessageOut.model_validate(m) for m in conversation.messages]
        ),
        ai_response=result.response
    )


@api.get("/conversations", response_model=ConversationPage)
async def list_conversations(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db)
) -> ConversationPage:
    """List active conversations, most recently updated first."""
    return DirectoryService.list_page(db, page=page, limit=limit)


@api.get("/conversations/search", response_model=ConversationPage)
async def search_conversations(
    q: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_SEARCH_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db)
) -> ConversationPage:
    """Search titles and message content."""
    return DirectoryService.search_page(db, q, page=page, limit=limit)


@api.get("/conversations/{thread_id}", response_model=ConversationDetailResponse)
async def get_conversation(
    thread_id: str,
    db: Session = Depends(get_db)
) -> ConversationDetailResponse:
    """Get a conversation with all of its messages."""
    return ConversationDetailResponse(data=DirectoryService.get(db, thread_id))


@api.post("/conversations", response_model=ConversationSummaryResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    conversation: Optional[ConversationCreate] = Body(None),
    db: Session = Depends(get_db)
) -> ConversationSummaryResponse:
    """Create an empty conversation."""
    title = conversation.title if conversation else None
    return ConversationSummaryResponse(data=DirectoryService.create(db, title))


@api.put("/conversations/{thread_id}/title", response_model=ConversationSummaryResponse)
async def update_conversation_title(
    thread_id: str,
    update: TitleUpdate,
    db: Session = Depends(get_db)
) -> ConversationSummaryResponse:
    """Rename a conversation."""
    return ConversationSummaryResponse(data=DirectoryService.rename(db, thread_id, update.title))


@api.delete("/conversations/{thread_id}", response_model=DeleteResponse)
async def delete_conversation(
    thread_id: str,
    db: Session = Depends(get_db)
) -> DeleteResponse:
    """Soft-delete a conversation."""
    DirectoryService.delete(db, thread_id)
    return DeleteResponse()


app.include_router(api)
