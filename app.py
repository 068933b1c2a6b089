#!/usr/bin/env python3
"""
app.py - Hugging Face Spaces entrypoint for the time-series chart Gradio demo.

Spaces expects a top-level variable referencing the Gradio app. This file
builds the UI from src/gradio_ui.py and exposes it as `demo`; the platform
launches it, so demo.launch() is not called here.
"""

from src.gradio_ui import _build_ui

demo = _build_ui()
