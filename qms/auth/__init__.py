"""
QMS Authentication Module — local email + password with session-based authorization.

Global roles mirror the sales organisation (admin, sales, procurement,
finance, auditor). Write access per module is configured in config.yaml
under ``permissions``; admins bypass every check.
"""

from qms.auth.decorators import login_required, require_write, role_required

__all__ = ["login_required", "require_write", "role_required"]
