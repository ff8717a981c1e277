from rest_framework.permissions import BasePermission


class IsOfficeStaff(BasePermission):
    """
    Only office staff may act as costing approvers.
    """

    def has_permission(self, request, view):
        user = request.user
        if user and user.is_authenticated and user.is_office_staff:
            return True

        return False
