"""Custom exceptions for the messaging backend."""


class MessagingBackendError(Exception):
    """Base exception for messaging backend errors."""

    pass


class BackendNotInitializedError(MessagingBackendError):
    """Raised when an operation needs a browser page that does not exist yet."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"WhatsApp Web client is not initialized (cannot {operation})")
        self.operation = operation


class ChatNotFoundError(MessagingBackendError):
    """Raised when a chat id does not resolve to a chat."""

    def __init__(self, chat_id: str) -> None:
        super().__init__(f"Chat not found: {chat_id}")
        self.chat_id = chat_id


class MediaFetchError(MessagingBackendError):
    """Raised when remote media cannot be downloaded."""

    pass
