"""Conversational filling of [bracketed] fields in .docx documents"""

__version__ = "1.0.0"
