from pydantic import BaseModel, ConfigDict, Field


class ScheduleCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    teacher_id: int
    day: str
    period: str
    subject: str
    class_name: str = Field(alias='class')


class ScheduleUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day: str
    period: str
    subject: str
    class_name: str = Field(alias='class')
