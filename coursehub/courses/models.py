from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional, Dict, Any
from enum import Enum

# Field names are camelCase because request bodies are written straight
# into stored documents that the dashboard already reads.

# ==================== ENUMS ====================

class StorageMode(str, Enum):
    TOP_LEVEL = "top-level"
    NESTED = "nested"

class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    DROPPED = "dropped"


# ==================== USER MODELS ====================

class UserCreate(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=1, max_length=100)
    userId: Optional[str] = None
    isActive: bool = True


class UserUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    coursesTaken: Optional[List[str]] = None
    isActive: Optional[bool] = None

class EnrollRequest(BaseModel):
    email: EmailStr
    courseName: str = Field(..., min_length=1, max_length=100)


# ==================== COURSE MODELS ====================

class CourseCreate(BaseModel):
    courseName: str = Field(..., min_length=1, max_length=100)
    courseId: Optional[str] = None
    description: Optional[str] = Field(None, max_length=500)
    isPublished: bool = False

class CourseUpdate(BaseModel):
    courseName: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    isPublished: Optional[bool] = None

class CourseUserRequest(BaseModel):
    email: EmailStr


# ==================== MODULE MODELS ====================

class ModuleCreate(BaseModel):
    title: str = Field(..., min_length=1)
    moduleId: Optional[str] = None
    description: Optional[str] = None
    order: int = 0
    estimatedMinutes: Optional[int] = None
    totalLessons: int = 0
    isUnlocked: bool = False

class ModuleUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    order: Optional[int] = None
    estimatedMinutes: Optional[int] = None
    totalLessons: Optional[int] = None
    isUnlocked: Optional[bool] = None

class ModuleReorder(BaseModel):
    moduleOrder: List[str]

# ==================== LESSON MODELS ====================

class LessonCreate(BaseModel):
    title: str = Field(..., min_length=1)
    content: Optional[str] = None
    description: Optional[str] = None
    order: int = 0
    moduleId: Optional[str] = None
    courseId: Optional[str] = None
    storageMode: StorageMode = StorageMode.TOP_LEVEL
    duration: Optional[int] = None
    videoUrl: Optional[str] = None

class LessonUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    description: Optional[str] = None
    order: Optional[int] = None
    duration: Optional[int] = None
    videoUrl: Optional[str] = None

# ==================== ENROLLMENT MODELS ====================

class EnrollmentCreate(BaseModel):
    userId: str
    courseId: str
    status: str = EnrollmentStatus.ACTIVE.value

class EnrollmentUpdate(BaseModel):
    status: Optional[str] = None
    progress: Optional[float] = Field(None, ge=0, le=100)

# ==================== QUIZ MODELS ====================

class QuizQuestion(BaseModel):
    question: str
    options: List[str] = []
    correctAnswer: Any

class QuizCreate(BaseModel):
    title: str = Field(..., min_length=1)
    lessonId: Optional[str] = None
    courseId: Optional[str] = None
    description: Optional[str] = None
    questions: List[QuizQuestion] = []
    passingScore: int = Field(70, ge=0, le=100)

class QuizUpdate(BaseModel):
    title: Optional[str] = None
    lessonId: Optional[str] = None
    courseId: Optional[str] = None
    description: Optional[str] = None
    questions: Optional[List[QuizQuestion]] = None
    passingScore: Optional[int] = Field(None, ge=0, le=100)
    isActive: Optional[bool] = None

class QuizAttemptCreate(BaseModel):
    userId: str
    answers: List[Any]
    timeSpent: Optional[int] = None

# ==================== RESPONSE HELPERS ====================

def envelope(data: Any = None, message: Optional[str] = None, count: Optional[int] = None) -> Dict[str, Any]:
    """Success envelope returned by every route"""
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    if count is not None:
        body["count"] = count
    return body
