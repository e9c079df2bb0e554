from datetime import datetime
from sqlalchemy import Column, String, Float, DateTime, Integer, Boolean
from infohealth.utils.db import Base

class RequestLog(Base):
    __tablename__ = "request_logs"

    id = Column(Integer, primary_key=True, index=True)
    # Length only; message text is health information and is not stored.
    message_chars = Column(Integer, nullable=False, default=0)
    provider_used = Column(String, nullable=False)
    model_used = Column(String, nullable=True)
    language = Column(String(2), nullable=False)
    mode = Column(String, nullable=False, default="chat")
    latency_ms = Column(Float, nullable=False)
    fallback_used = Column(Boolean, default=False)
    timestamp = Column(DateTime, default=datetime.utcnow)
