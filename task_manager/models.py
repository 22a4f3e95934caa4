from sqlalchemy import CheckConstraint, Column, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'in_progress', 'completed')", name="ck_tasks_status"
        ),
        CheckConstraint("priority IN ('low', 'medium', 'high')", name="ck_tasks_priority"),
    )

    id = Column(String(36), primary_key=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    status = Column(String(16), nullable=False, default="pending", index=True)  # pending, in_progress, completed
    priority = Column(String(16), nullable=False, default="medium")  # low, medium, high
    due_date = Column(String(40), nullable=True)
    # ISO 8601 strings; fixed width so text order is time order
    created_at = Column(String(32), nullable=False, index=True)
    updated_at = Column(String(32), nullable=False)

    def __repr__(self):
        return f"<Task(id={self.id}, title='{self.title}', status='{self.status}')>"
