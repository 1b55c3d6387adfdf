from sqlalchemy import Column, DateTime, String, func

from . import Base


class ClientSession(Base):
    """Cached profile of a logged-in user plus their UI preferences.

    The hosted backend owns the user row; this table only mirrors what the
    client needs between requests and is dropped at logout.
    """

    __tablename__ = "client_sessions"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    username = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    theme = Column(String(10), nullable=False, default="dark")

    # Технические поля
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def display_name(self) -> str:
        """Name shown to other users, falling back to the email local part."""
        if self.username:
            return self.username
        if self.email:
            return self.email.split("@")[0]
        return "Anonymous"

    def __repr__(self):
        return f"<ClientSession(id={self.id}, user_id={self.user_id})>"
