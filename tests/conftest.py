"""Shared fixtures: sample documents for each vertical."""

import pytest

ENERGY_LEASE = """OIL, GAS AND MINERAL LEASE AGREEMENT

WHEREAS the parties below wish to enter into this agreement for the
exploration and production of oil and gas;

Lessor: Jane Rancher
Lessee: Permian Basin Operating LLC
Effective Date: January 15, 2024
Primary Term: 5 years
Royalty: 10%
Bonus: $250,000
The leased premises cover 640 acres in Midland County.
Depth: all depths below the surface
Minerals: oil, gas and associated hydrocarbons

Lessee shall comply with endangered species protections and all county regulations.
Lessee shall perform site restoration after operations cease.
Lessee provides a title warranty and shall carry environmental liability insurance.
This agreement binds the heirs and assigns of both parties and continues for so long
thereafter as oil or gas is produced in paying quantities from the leased premises.
"""

GOVERNMENT_CONTRACT = """FEDERAL SERVICES CONTRACT

Agency: Department of Defense
Contract Number: W91CRB-24-C-0001
NAICS Code: 541512
Contract Value: $4,500,000
Payment Terms: Net 30 upon invoice acceptance.
Period of Performance: 12 months from award

This contract includes Termination for Convenience of the Government and a Changes clause.
Disputes shall be resolved under the Contract Disputes Act.
Deliverables: monthly status reports, system design document.
Key Personnel: Program Manager; Lead Engineer; Security Officer.
The contractor must hold ISO 9001 and CMMI Level 3 appraisals and be SAM registered.
This is a small business set-aside.
""" + ("Additional statement of work detail. " * 20)

INSURANCE_CLAIM = """PROPERTY LOSS CLAIM

Claim Number: CLM-2024-0042
Policy Number: PROP-778812
Policyholder: Harbor Warehousing Inc
Coverage Limit: $1,000,000
Deductible: $10,000
Claim Amount: $250,000

Exclusions: flood.

Description of loss: on March 3 rising flood waters entered the warehouse and damaged
stored inventory and racking along the east wall.
"""


@pytest.fixture
def energy_lease():
    return ENERGY_LEASE


@pytest.fixture
def government_contract():
    return GOVERNMENT_CONTRACT


@pytest.fixture
def insurance_claim():
    return INSURANCE_CLAIM
