#!/usr/bin/env python3
"""
Run script for the SpeakerCast backend
"""
import uvicorn

from speakercast.config.settings import settings
from speakercast.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, reload=settings.debug)
