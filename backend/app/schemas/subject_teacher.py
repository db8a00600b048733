from pydantic import BaseModel, Field


class SubjectTeacherUpsert(BaseModel):
    subject_id: str = Field(min_length=1, max_length=36)
    batch_id: str = Field(min_length=1, max_length=36)
    teacher_id: str = Field(min_length=1, max_length=36)


class SubjectTeacherOut(SubjectTeacherUpsert):
    id: str

    model_config = {"from_attributes": True}
