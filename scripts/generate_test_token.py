#!/usr/bin/env python3
"""Generate JWT tokens for the demo accounts."""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.auth import Role
from src.core.config import get_settings
from src.api.deps import issue_smoke_token
from src.domain.reference_data import EDUCATOR_ID, TEST_EMPLOYER_ID, TEST_LEARNER_ID

org_id = get_settings().default_org_id

for label, user_id, role in (
    ("Educator", EDUCATOR_ID, Role.EDUCATOR),
    ("Learner", TEST_LEARNER_ID, Role.LEARNER),
    ("Industry expert", TEST_EMPLOYER_ID, Role.MASTER),
):
    token = issue_smoke_token(user_id, role=role, org_id=org_id)
    print(f"{label} Token ({user_id}):\n{token}\n")
