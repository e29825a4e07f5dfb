from demandplus.auth.auth_service import AuthService, Role, can_edit

__all__ = ["AuthService", "Role", "can_edit"]
