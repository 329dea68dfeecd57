# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from .keys import KeyType, get_public_key_digest, load_private_key, save_private_key
from .signer import Signer
from .x509 import CA, load_certificate, make_name, save_certificate

__all__ = 'CA', 'KeyType', 'Signer', 'get_public_key_digest', 'load_certificate', 'load_private_key', 'make_name', 'save_certificate', 'save_private_key'
