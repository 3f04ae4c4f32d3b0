from rest_framework import permissions


def is_admin(user):
    return bool(user and user.is_authenticated and getattr(user, 'is_admin', False))


def owner_of(obj):
    """The account that owns a company, job or application."""
    if hasattr(obj, 'owner_id'):
        return obj.owner_id
    if hasattr(obj, 'company'):
        return obj.company.owner_id
    if hasattr(obj, 'job'):
        return obj.job.company.owner_id
    return None


class IsAdmin(permissions.BasePermission):
    message = 'Acesso restrito ao administrador.'

    def has_permission(self, request, view):
        return is_admin(request.user)


class IsCompanyOrAdmin(permissions.BasePermission):
    message = 'Acesso restrito a empresas cadastradas.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and (is_admin(user) or hasattr(user, 'company')))


class IsOwnerOrAdmin(permissions.BasePermission):
    message = 'Você não tem permissão para alterar este registro.'

    def has_object_permission(self, request, view, obj):
        if is_admin(request.user):
            return True
        return request.user.is_authenticated and owner_of(obj) == request.user.pk
