#!/usr/bin/env python3
"""
Main entry point for the recruiting backend
This Flask app provides:
- Matching of candidates, applications and talent pool entries
- Editing locks for concurrent edits
- Scheduled tasks, the social media / Movido post pipeline and sync settings
- In-app notifications
"""

from app import app
from scheduler import start_background_services

if __name__ == '__main__':
    start_background_services()
    app.run()
