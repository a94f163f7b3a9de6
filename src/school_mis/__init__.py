"""School MIS backend package.

Organized by feature modules (auth, attendance, students, ...) with a thin
Flask controller layer over service/repository layers backed by MongoDB.
"""
