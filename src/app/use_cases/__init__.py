"""
Use Cases

Organized into domain folders:
- auth/: Registration, login, MFA verification, refresh, logout, password change
- sessions/: Listing and revoking refresh-token sessions
- mfa/: Second factor enrollment and backup codes
- users/: Profile and audit log
"""
