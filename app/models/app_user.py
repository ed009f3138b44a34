"""AppUser model - staff users with username/password authentication."""
import enum
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from app.database import Base, BigIntPK


class UserRole(enum.Enum):
    """Staff roles."""
    ADMIN = "ADMIN"
    SUPERVISOR = "ARBETSLEDARE"
    TECHNICIAN = "TEKNIKER"


class AppUser(Base):
    """AppUser model (anvandare)."""

    __tablename__ = 'app_user'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    username = Column(String(100), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.TECHNICIAN.value)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def set_password(self, password):
        """Set password hash."""
        self.password_hash = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check password against hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<AppUser(id={self.id}, username='{self.username}', role='{self.role}')>"
