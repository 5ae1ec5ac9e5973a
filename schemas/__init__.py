from .conversations import (
    ConversationCreate, TitleUpdate, MessageOut, ConversationSummary, ConversationDetail,
    Pagination, ConversationPage, ConversationSummaryResponse, ConversationDetailResponse,
    StartConversationData, StartConversationResponse, SendMessageResponse, DeleteResponse,
    ErrorResponse,
)

__all__ = ["ConversationCreate", "TitleUpdate", "MessageOut", "ConversationSummary", "ConversationDetail",
           "Pagination", "ConversationPage", "ConversationSummaryResponse", "ConversationDetailResponse",
           "StartConversationData", "StartConversationResponse", "SendMessageResponse", "DeleteResponse",
           "ErrorResponse"]
