from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class PhoneAnswer(BaseModel):
    """Ответ на вопрос типа phone."""
    country_code: str = "+1"
    number: str = ""

    def __str__(self) -> str:
        return f"{self.country_code} {self.number}".strip()


class FileAnswer(BaseModel):
    """Ответ на вопрос типа file/image: дескриптор файла или URL."""
    file_id: str
    file_name: Optional[str] = None
    content_type: Optional[str] = None
    size: Optional[int] = None

    def __str__(self) -> str:
        return self.file_name or self.file_id


class Feedback(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str = ""


class ApplicationData(BaseModel):
    """Данные одной попытки прохождения флоу."""
    flow_id: str
    started_at: datetime = Field(default_factory=datetime.now)
    answers: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    assessment: Dict[str, Any] = Field(default_factory=dict)
    interview_scheduling: Dict[str, Any] = Field(default_factory=dict)
    video_interview: Dict[str, Any] = Field(default_factory=dict)
    feedback: Optional[Feedback] = None

    def update_module(self, module_id: str, values: Dict[str, Any]) -> None:
        current = self.answers.setdefault(module_id, {})
        current.update(values)

    def answered_modules(self) -> List[str]:
        return [module_id for module_id, values in self.answers.items() if values]

    def summary(self) -> Dict[str, Any]:
        return {
            "flow_id": self.flow_id,
            "modules": self.answered_modules(),
            "assessment_completed": bool(self.assessment.get("completed")),
            "interview": {
                "date": self.interview_scheduling.get("selected_date"),
                "time": self.interview_scheduling.get("selected_time"),
            },
            "video_answered": len(self.video_interview.get("answered", [])),
            "feedback": self.feedback.rating if self.feedback else None,
        }
