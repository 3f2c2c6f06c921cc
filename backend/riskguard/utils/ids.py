from bson import ObjectId


def new_id() -> str:
    """24-hex ObjectId string, valid as both an in-memory key and a Mongo _id."""
    return str(ObjectId())
