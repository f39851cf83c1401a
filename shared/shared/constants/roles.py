from enum import Enum


class Role(str, Enum):
    ASPIRANT = "aspirant"
    INSTITUTION = "institution"
    ADMIN = "admin"
