from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, UniqueConstraint, func

from flylinks import config
from flylinks.database import Base


class ShortUrl(Base):
    __tablename__ = "urls"
    __table_args__ = (
        # One record per owner and normalized URL
        UniqueConstraint("user", "url", name="uq_urls_user_url"),
    )

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(config.MAX_CODE_LENGTH), unique=True, index=True, nullable=False)
    url = Column(String(config.MAX_URL_LENGTH), nullable=False)
    user = Column(String(255), index=True, nullable=False, default=config.DEFAULT_USER)
    clicks = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<ShortUrl {self.code} -> {self.url} ({self.user})>"


class CodeFactory(Base):
    """Holds the position of the last code issued by the sequence."""

    __tablename__ = "code_factory"
    __table_args__ = (
        CheckConstraint("id = 1", name="ck_code_factory_singleton"),
    )

    SINGLETON_ID = 1

    id = Column(Integer, primary_key=True, default=SINGLETON_ID, autoincrement=False)
    count = Column(Integer, nullable=False, default=0)


class RetiredCode(Base):
    """Code of a deleted link; never handed out again."""

    __tablename__ = "retired_codes"

    code = Column(String(config.MAX_CODE_LENGTH), primary_key=True)
    retired_at = Column(DateTime(timezone=True), server_default=func.now())
