"""
Warden - Services Package
=========================

Long-lived services created once the bot is connected.

Available Services:
    audit_log: Review workflow whose state lives in posted records
    moderation: Blacklist and global ban actions
    role_backups: Role snapshots on leave, manual restore
    temp_roles: Expiry of temporary role grants
    maintenance: Daily case prune and backup sweep
"""
