from django.dispatch import Signal

# Sent inside the create transaction, after the namespace row is written and before the
# administrators are fixed. Arguments: space (the reloaded Space), user (acting user or None).
space_created = Signal()

# Sent by the AdministratorSynchronizer whenever it changes a user's groups.
# Arguments: user, old_groups (set), new_groups (set), reason (str), space (Space).
group_membership_changed = Signal()
