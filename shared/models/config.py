from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A single setting a backend client requires at construction time.

    Attributes:
        env_key (str): Key of the setting without the "<TYPE>_<ENGINE>_" prefix, e.g. "BASE_URL".
        val_type (str): Expected type: "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Fallback value. None marks the setting as required.
    """

    env_key: str
    val_type: str = "string"
    default: str | int | float | bool | list | None = None
