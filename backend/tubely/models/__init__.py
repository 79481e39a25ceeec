"""
Models Package for Tubely.

Pydantic models shared by the API, services and the record store.

Example Usage:
    ```python
    from tubely.models import Video

    video = Video(user_id=owner_id, title="Boots")
    document = video.to_document()
    ```
"""

from tubely.models.video import Video


__all__ = ["Video"]
