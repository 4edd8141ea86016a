import uuid
from sqlalchemy import Boolean, Column, DateTime, Float, String, Text
from overlay_studio.core.db import Base
from overlay_studio.models.overlay import utcnow


class StreamSettingsRecord(Base):
    __tablename__ = "stream_settings"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    rtsp_url = Column(Text, nullable=False)
    name = Column(String, nullable=False, default="Default Stream")
    description = Column(Text, nullable=True)
    auto_play = Column(Boolean, nullable=False, default=True)
    show_controls = Column(Boolean, nullable=False, default=True)
    default_volume = Column(Float, nullable=False, default=0.5)

    # The most recent row is the one in effect
    last_updated = Column(DateTime, default=utcnow, nullable=False, index=True)
