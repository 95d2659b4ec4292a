import uuid


def new_contact_id() -> str:
    return str(uuid.uuid4())


def new_category_id() -> str:
    return str(uuid.uuid4())


def short_token() -> str:
    return uuid.uuid4().hex[:8]
