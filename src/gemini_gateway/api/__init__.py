"""Gemini Gateway — FastAPI REST API layer.

This package contains the FastAPI application, Pydantic request/response
models, and the scratch-file handling for multipart uploads.

Modules
-------
main
    FastAPI application with all route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic models for API request and response validation.
uploads
    Buffering of uploaded files to the scratch directory and their cleanup.
"""
