from pydantic import BaseModel, ConfigDict


class AppBaseModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=False,
        str_max_length=262144,
        extra="forbid",
        validate_default=True,
    )
