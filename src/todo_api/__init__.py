"""
Multi-user Todo API package.

Build the application with ``todo_api.main.create_app``; run it with
``python -m todo_api``.
"""
