from pydantic import BaseModel, Field


class CollectionCreateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=80)
    name: str = Field(min_length=1, max_length=200)
    admin_key: str = Field(min_length=1)
    subjects: list[str] = []


class StudentJoinRequest(BaseModel):
    student_card_code: str = ''


class TeacherJoinRequest(BaseModel):
    teacher_id: str = ''


class RecordCreateRequest(BaseModel):
    student_id: int
    subject: str
    content: str = ''
    editor: str = ''


class RecordEditRequest(BaseModel):
    content: str = ''
    note: str = ''
    modified_by: str = ''
    expected_version: int | None = Field(default=None, ge=0)


class StudentCreateRequest(BaseModel):
    name: str
    student_card_code: str
    grade: int | None = None
    klass: int | None = None
    number: int | None = None


class TeacherCreateRequest(BaseModel):
    teacher_id: str
    name: str = ''


class SubjectRequest(BaseModel):
    subject: str = ''

