"""
Group Permissions Configuration
This config defines the closed permission table for actions inside a group.
Used by the role policy engine; the decision logic lives in
app/modules/memberships/policy.py.
"""

# Roles ordered from most to least privileged
GROUP_ROLES = ["leader", "admin", "member"]

# Action -> which roles may perform it and which extra checks apply to the target
GROUP_ACTIONS = {
    "add_member": {
        "roles": ["leader", "admin"],
        "target": "non_member",
        "description": "Invite or add a user to the group"
    },
    "remove_member": {
        "roles": ["leader"],
        "target": "member",
        "protect_creator": True,
        "allow_self": False,
        "description": "Remove a member from the group"
    },
    "promote_admin": {
        "roles": ["leader"],
        "target": "member",
        "target_roles": ["member"],
        "protect_creator": True,
        "allow_self": False,
        "description": "Promote a member to admin"
    },
    "demote_admin": {
        "roles": ["leader"],
        "target": "member",
        "target_roles": ["admin"],
        "protect_creator": True,
        "allow_self": False,
        "description": "Demote an admin to member"
    },
    "transfer_leadership": {
        "roles": ["leader"],
        "target": "member",
        "target_roles": ["admin", "member"],
        "protect_creator": True,
        "allow_self": False,
        "description": "Hand the leader role to another member; the actor becomes a member"
    },
    "edit_group": {
        "roles": ["leader", "admin"],
        "description": "Edit group name, description and color"
    },
    "delete_group": {
        "roles": ["leader"],
        "description": "Delete the group and everything in it"
    },
    "view_members": {
        "roles": ["leader", "admin", "member"],
        "description": "List group members"
    },
    "view_activity": {
        "roles": ["leader", "admin", "member"],
        "description": "Read the group activity feed"
    },
    "leave_group": {
        # Leaders must transfer leadership before leaving
        "roles": ["admin", "member"],
        "protect_creator": True,
        "description": "Leave the group voluntarily"
    },
    "log_content_activity": {
        "roles": ["leader", "admin", "member"],
        "description": "Record note/goal lifecycle events in the activity feed"
    },
}


def get_permission_matrix():
    """
    Returns the table flattened per role
    Format: {
        "leader": ["add_member", "remove_member", ...],
        "admin": ["add_member", "edit_group", ...],
        "member": ["view_members", ...]
    }
    """
    matrix = {role: [] for role in GROUP_ROLES}
    for action, rule in GROUP_ACTIONS.items():
        for role in rule["roles"]:
            matrix[role].append(action)
    return {role: sorted(actions) for role, actions in matrix.items()}


PERMISSION_MATRIX = get_permission_matrix()
