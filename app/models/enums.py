import enum


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class InteractionAction(str, enum.Enum):
    VIEW = "view"
    LIKE = "like"
    SKIP = "skip"
