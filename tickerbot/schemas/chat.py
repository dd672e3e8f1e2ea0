from pydantic import BaseModel


class Guild(BaseModel):
    id: str
    name: str = ""


class Role(BaseModel):
    id: str
    name: str
