"""ASGI entrypoint for the object recognition API."""

from object_recognition.api.app import create_app
from object_recognition.config import Settings
from object_recognition.containers import build_container

app = create_app(build_container(Settings()))
