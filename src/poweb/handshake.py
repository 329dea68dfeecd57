# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Parcel collection handshake.

The server opens the parcel collection by sending a challenge with a nonce.
The client must answer with the signatures of that nonce, one per node whose
parcels it wants to collect, before the server starts delivering parcels.
"""

import logging
from collections.abc import Sequence
from typing import Protocol

from poweb.exceptions import ProtocolViolationError
from poweb.messages import Challenge, ChallengeResponse, InvalidMessageError, NonceSignature

__all__ = 'NonceSigner', 'respond_to_challenge'


logger = logging.getLogger(__name__)


class NonceSigner(Protocol):
    def sign(self, data: bytes, /) -> NonceSignature: ...


def respond_to_challenge(frame: bytes | str, nonce_signers: Sequence[NonceSigner]) -> ChallengeResponse:
    if isinstance(frame, str):
        raise ProtocolViolationError('The server sent a text frame instead of a handshake challenge')
    try:
        challenge = Challenge.from_wire(frame)
    except InvalidMessageError as exc:
        raise ProtocolViolationError('The server sent an invalid handshake challenge') from exc
    logger.debug('Signing handshake nonce with %d signer(s)', len(nonce_signers))
    return ChallengeResponse(nonce_signatures=[signer.sign(challenge.nonce) for signer in nonce_signers])
