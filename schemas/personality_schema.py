from sqlmodel import SQLModel, Field


class PersonalityBase(SQLModel):
    name: str = Field(unique=True)


class PersonalityCreate(PersonalityBase):
    prompt: str = Field(min_length=1)
