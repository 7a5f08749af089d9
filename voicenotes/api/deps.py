"""FastAPI dependencies shared by routes and WebSocket endpoints."""

from fastapi import FastAPI, Request

from voicenotes.services.device import NoteDevice


def device_for_app(app: FastAPI) -> NoteDevice:
    """Return the app's device, building it from settings on first use."""
    device = getattr(app.state, "device", None)
    if device is None:
        device = NoteDevice()
        app.state.device = device
    return device


def get_device(request: Request) -> NoteDevice:
    return device_for_app(request.app)
