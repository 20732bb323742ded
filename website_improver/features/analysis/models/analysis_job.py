import enum

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from website_improver.platform.db.base import BaseModel


class AnalysisJobStatus(enum.Enum):
    """Analysis job status state machine: queued -> processing -> completed | failed"""
    queued = "queued"
    processing = "processing"
    completed = "completed"
    failed = "failed"


TERMINAL_STATUSES = {AnalysisJobStatus.completed, AnalysisJobStatus.failed}


class AnalysisJob(BaseModel):

    __tablename__ = "analysis_jobs"

    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(Text, nullable=False)

    status = Column(Enum(AnalysisJobStatus), default=AnalysisJobStatus.queued, nullable=False, index=True)
    progress = Column(Integer, default=0, nullable=False)
    options = Column(JSON, nullable=False, default=dict)

    # Timestamps (created_at and updated_at inherited from BaseModel)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    estimated_completion_time = Column(DateTime(timezone=True), nullable=True)

    # Set iff status == failed
    error = Column(Text, nullable=True)

    # Result payload, attached only on completion
    original_site = Column(JSON, nullable=True)
    improvements = Column(JSON, nullable=True)
    seo_score = Column(Integer, nullable=True)
    performance_score = Column(Integer, nullable=True)
    accessibility_score = Column(Integer, nullable=True)
    ux_score = Column(Integer, nullable=True)
    analysis_time = Column(Integer, nullable=True)  # milliseconds
    pages_analyzed = Column(Integer, nullable=True)
    credits_used = Column(Float, nullable=True)

    __table_args__ = (
        CheckConstraint("progress >= 0 AND progress <= 100", name="check_progress_range"),
        Index("idx_analysis_jobs_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<AnalysisJob(id={self.id}, status={self.status}, progress={self.progress})>"
