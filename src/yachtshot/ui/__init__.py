"""Gradio page for Yachtshot: upload pipeline, session upload slot and handlers."""
