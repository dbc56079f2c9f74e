"""Authentication and authorization.

Learn: Users authenticate with email/password and receive a JWT pair:
1. Access token → sent as "Authorization: Bearer" on every API call,
   verified statelessly (signature + expiry only)
2. Refresh token → exchanged at /auth/refresh, additionally checked
   against a hash stored on the user row

Ownership checks (who may edit or delete a post/reply) live in
ownership.py and are applied by the service layer.
"""
