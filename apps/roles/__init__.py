"""
Contextual role and permission resolution.

Decides whether the signed-in principal holds a role or permission,
optionally scoped to an account, team, league or season:
- Static role catalog (names, hierarchy closures, permission sets)
- Session role state fetched from the role directory
- Role and permission evaluators
- DRF permission classes for route guards
"""
