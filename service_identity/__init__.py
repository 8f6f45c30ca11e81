"""
Identity service for Soltar: OTP sign-in, client provisioning and sessions.
"""
