"""HR back-office package.

Organized by feature modules (permissions, attendance, timesheets, leave, dossier, ...)
with a thin Flask controller layer over service/repository layers.
"""
