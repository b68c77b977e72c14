import uuid


def generate_id() -> str:
    """Collision-resistant string id for listings and listing images."""
    return uuid.uuid4().hex
