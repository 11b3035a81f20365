import enum


class RequestStatus(str, enum.Enum):
    pending = "pending"
    created = "created"
    rejected = "rejected"
