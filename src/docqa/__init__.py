"""Single-document question answering over PDF and DOCX uploads."""
