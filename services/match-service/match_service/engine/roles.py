from .models import Role


def roles_compatible(role1: Role, role2: Role) -> bool:
    # Two riders need a third person to drive; EITHER can fill whichever seat is open.
    return not (role1 == Role.RIDER and role2 == Role.RIDER)
