"""Custom exceptions for repository operations."""


class EmailAlreadyRegisteredError(Exception):
    """Raised when registering an email that already has an account."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


class InvalidCredentialsError(Exception):
    """Raised when an email/password pair does not match an account."""

    def __init__(self):
        super().__init__("Invalid email or password")


class InvalidTokenError(Exception):
    """Raised when a session or verification token is unknown or expired."""

    def __init__(self):
        super().__init__("Invalid or expired token")


class AgentNotFoundError(Exception):
    """Raised when a requested agent does not exist or is not accessible."""

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Agent {agent_id} not found")


class AgentAccessDeniedError(Exception):
    """Raised when a private agent is used by someone other than its owner."""

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Access denied to agent {agent_id}")


class ConversationNotFoundError(Exception):
    """Raised when a conversation does not exist or belongs to another user."""

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation {conversation_id} not found")
