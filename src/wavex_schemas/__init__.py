"""JSON Schemas shipped as wavex package data."""
