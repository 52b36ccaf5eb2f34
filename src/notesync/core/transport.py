#!/usr/bin/env python3
"""
Credentials and transport wiring for network git operations.

GitPython drives the git executable, so the "callbacks" handed to the
transport are environment variables: a credential helper that always answers
with the stored username/token pair, an optional certificate override, and a
``RemoteProgress`` subclass for transfer counters during clone.
"""

from dataclasses import dataclass, field
from typing import Dict

from git import RemoteProgress

from .progress import ThrottledProgress, STAGE_RECEIVING, scaled_percent

USERNAME_VAR = 'NOTESYNC_GIT_USERNAME'
TOKEN_VAR = 'NOTESYNC_GIT_TOKEN'

# Answers every "get" request with the pair exported in the variables above.
CREDENTIAL_HELPER = (
    '!f() { test "$1" = get || return 0; '
    f'echo "username=${{{USERNAME_VAR}}}"; '
    f'echo "password=${{{TOKEN_VAR}}}"; '
    '}; f'
)


@dataclass(frozen=True)
class Credentials:
    """Username and personal access token for HTTPS remotes."""

    username: str
    token: str = field(repr=False)

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, token='***')"


class TransportCallbacks:
    """Builds the environment every clone, fetch and push runs with.

    Args:
        credentials: Pair returned for every authentication request.
        accept_invalid_certificates: Disable TLS certificate verification.
    """

    def __init__(self, credentials: Credentials, accept_invalid_certificates: bool = True):
        self.credentials = credentials
        self.accept_invalid_certificates = accept_invalid_certificates

    def authentication(self) -> Dict[str, str]:
        """Credential helper configuration, passed through GIT_CONFIG_* variables."""
        config = [
            # An empty value clears helpers inherited from user or system config
            ('credential.helper', ''),
            ('credential.helper', CREDENTIAL_HELPER),
        ]
        env = {
            'GIT_CONFIG_COUNT': str(len(config)),
            USERNAME_VAR: self.credentials.username,
            TOKEN_VAR: self.credentials.token,
            'GIT_TERMINAL_PROMPT': '0',
            'GCM_INTERACTIVE': 'never',
            'GIT_ASKPASS': '',
            'SSH_ASKPASS': '',
            'GIT_SSH_COMMAND': 'ssh -o BatchMode=yes',
        }
        for index, (key, value) in enumerate(config):
            env[f'GIT_CONFIG_KEY_{index}'] = key
            env[f'GIT_CONFIG_VALUE_{index}'] = value
        return env

    def certificate_check(self) -> Dict[str, str]:
        """Certificate override; empty when verification stays on."""
        if self.accept_invalid_certificates:
            return {'GIT_SSL_NO_VERIFY': '1'}
        return {}

    def environment(self) -> Dict[str, str]:
        env = self.authentication()
        env.update(self.certificate_check())
        return env


class TransferProgress(RemoteProgress):
    """Turns git's "Receiving objects" counters into throttled progress events."""

    def __init__(self, throttle: ThrottledProgress):
        super().__init__()
        self.throttle = throttle

    def update(self, op_code: int, cur_count, max_count=None, message: str = '') -> None:
        if op_code & self.OP_MASK != self.RECEIVING:
            return

        received = int(cur_count or 0)
        total = int(max_count or 0)
        percent = scaled_percent(received, total) if total else 0
        self.throttle.update(STAGE_RECEIVING, received, total, percent)
