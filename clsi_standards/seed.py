"""Reference breakpoint standards and expert rules.

Loads a starter set of CLSI M100 disk diffusion and MIC breakpoints plus
the expert rules that go with them. Safe to run repeatedly: existing
standards and rules (matched by name) are skipped.

Usage:
    clsi-standards seed
    clsi-standards --db-path /path/to/standards.db seed
"""

import logging

from .breakpoints.service import BreakpointStandardService
from .config import config
from .exceptions import DuplicateStandardError
from .models import RuleType, TestMethod
from .rules.service import ExpertRuleService

logger = logging.getLogger(__name__)

# Opaque identifiers used by the seeded data
ESCHERICHIA_COLI = "escherichia_coli"
STAPHYLOCOCCUS_AUREUS = "staphylococcus_aureus"
PSEUDOMONAS_AERUGINOSA = "pseudomonas_aeruginosa"

AMPICILLIN = "AMP"
CEFTRIAXONE = "CRO"
CIPROFLOXACIN = "CIP"
MEROPENEM = "MEM"
VANCOMYCIN = "VAN"

DISK_NOTES = "Zone diameter interpretive criteria"
MIC_NOTES = "MIC interpretive criteria in μg/mL"

BREAKPOINT_STANDARDS = [
    {
        "microorganism_id": ESCHERICHIA_COLI, "drug_id": AMPICILLIN, "year": 2024,
        "method": TestMethod.DISK_DIFFUSION, "notes": DISK_NOTES,
        "breakpoints": {"susceptible_min": 17, "intermediate_min": 14,
                        "intermediate_max": 16, "resistant_max": 13},
    },
    {
        "microorganism_id": ESCHERICHIA_COLI, "drug_id": AMPICILLIN, "year": 2024,
        "method": TestMethod.BROTH_MICRODILUTION, "notes": MIC_NOTES,
        "breakpoints": {"susceptible_max": 8, "intermediate_min": 16,
                        "intermediate_max": 16, "resistant_min": 32},
    },
    {
        "microorganism_id": ESCHERICHIA_COLI, "drug_id": CEFTRIAXONE, "year": 2024,
        "method": TestMethod.DISK_DIFFUSION, "notes": DISK_NOTES,
        "breakpoints": {"susceptible_min": 23, "intermediate_min": 20,
                        "intermediate_max": 22, "resistant_max": 19},
    },
    {
        "microorganism_id": ESCHERICHIA_COLI, "drug_id": CIPROFLOXACIN, "year": 2018,
        "method": TestMethod.DISK_DIFFUSION, "notes": DISK_NOTES,
        "breakpoints": {"susceptible_min": 21, "intermediate_min": 16,
                        "intermediate_max": 20, "resistant_max": 15},
    },
    {
        "microorganism_id": ESCHERICHIA_COLI, "drug_id": CIPROFLOXACIN, "year": 2024,
        "method": TestMethod.DISK_DIFFUSION, "notes": DISK_NOTES,
        "breakpoints": {"susceptible_min": 26, "intermediate_min": 22,
                        "intermediate_max": 25, "resistant_max": 21},
    },
    {
        "microorganism_id": PSEUDOMONAS_AERUGINOSA, "drug_id": MEROPENEM, "year": 2024,
        "method": TestMethod.BROTH_MICRODILUTION, "notes": MIC_NOTES,
        "breakpoints": {"susceptible_max": 2, "intermediate_min": 4,
                        "intermediate_max": 4, "resistant_min": 8},
    },
    {
        "microorganism_id": STAPHYLOCOCCUS_AUREUS, "drug_id": VANCOMYCIN, "year": 2024,
        "method": TestMethod.BROTH_MICRODILUTION, "notes": MIC_NOTES,
        "breakpoints": {"susceptible_max": 2, "intermediate_min": 4,
                        "intermediate_max": 8, "resistant_min": 16},
    },
]

EXPERT_RULES = [
    {
        "name": "E. coli Ampicillin Intrinsic Resistance",
        "description": "E. coli shows intrinsic resistance to ampicillin due to chromosomal beta-lactamase",
        "rule_type": RuleType.INTRINSIC_RESISTANCE,
        "microorganism_id": ESCHERICHIA_COLI, "drug_id": AMPICILLIN,
        "condition": 'interpretedResult === "susceptible" && testValue < 14',
        "action": "Flag as possible false susceptible - verify organism identification and test procedure",
        "priority": 9, "year": 2024,
    },
    {
        "name": "Vancomycin Disk Diffusion QC",
        "description": "Vancomycin should not be tested by disk diffusion for Staphylococcus",
        "rule_type": RuleType.QUALITY_CONTROL,
        "microorganism_id": STAPHYLOCOCCUS_AUREUS, "drug_id": VANCOMYCIN,
        "condition": 'testMethod === "disk_diffusion"',
        "action": "Use broth microdilution method for vancomycin susceptibility testing",
        "priority": 8, "year": 2024,
    },
    {
        "name": "Pseudomonas Carbapenem Resistance",
        "description": "Pseudomonas aeruginosa carbapenem resistance detection",
        "rule_type": RuleType.ACQUIRED_RESISTANCE,
        "microorganism_id": PSEUDOMONAS_AERUGINOSA, "drug_id": MEROPENEM,
        "condition": 'interpretedResult === "resistant"',
        "action": "Consider carbapenemase production - perform confirmatory testing",
        "priority": 7, "year": 2024,
    },
    {
        "name": "ESBL Phenotype Confirmation",
        "description": "Extended-spectrum beta-lactamase phenotype confirmation",
        "rule_type": RuleType.PHENOTYPE_CONFIRMATION,
        "microorganism_id": ESCHERICHIA_COLI, "drug_id": CEFTRIAXONE,
        "condition": 'interpretedResult === "resistant" && testValue <= 22',
        "action": "Perform ESBL confirmatory testing with clavulanate",
        "priority": 6, "year": 2024,
    },
    {
        "name": "Ciprofloxacin Reporting Guidance",
        "description": "Fluoroquinolone reporting guidance for Enterobacterales",
        "rule_type": RuleType.REPORTING_GUIDANCE,
        "microorganism_id": ESCHERICHIA_COLI, "drug_id": CIPROFLOXACIN,
        "condition": 'interpretedResult === "intermediate"',
        "action": "Consider clinical context - intermediate results may predict treatment failure",
        "priority": 5, "year": 2024,
    },
    {
        "name": "Vancomycin Non-Susceptible S. aureus",
        "description": "VISA/VRSA are exceptional phenotypes that must be confirmed before reporting",
        "rule_type": RuleType.EXCEPTIONAL_PHENOTYPE,
        "microorganism_id": STAPHYLOCOCCUS_AUREUS, "drug_id": VANCOMYCIN,
        "condition": 'interpretedResult != "S" && testValue >= 4',
        "action": "Vancomycin MIC {testValue} µg/mL - confirm identification and refer to a reference laboratory",
        "priority": 10, "year": None,
    },
]


def seed_breakpoint_standards(service: BreakpointStandardService) -> int:
    """Create any missing reference standards. Returns the number created."""
    created = 0
    for data in BREAKPOINT_STANDARDS:
        try:
            service.create_breakpoint_standard(
                source_document=config.DEFAULT_STANDARD_SOURCE,
                **data,
            )
            created += 1
        except DuplicateStandardError:
            logger.debug(
                f"Standard {data['microorganism_id']}/{data['drug_id']} "
                f"{data['year']} already present"
            )
    return created


def seed_expert_rules(service: ExpertRuleService) -> int:
    """Create any missing reference rules. Returns the number created."""
    existing = {rule.name for rule in service.get_all_expert_rules()}
    created = 0
    for data in EXPERT_RULES:
        if data["name"] in existing:
            continue
        service.create_expert_rule(source_reference=config.DEFAULT_STANDARD_SOURCE, **data)
        created += 1
    return created


def seed_all(
    breakpoint_service: BreakpointStandardService,
    rule_service: ExpertRuleService,
) -> dict[str, int]:
    standards = seed_breakpoint_standards(breakpoint_service)
    rules = seed_expert_rules(rule_service)
    logger.info(f"Seeded {standards} breakpoint standards and {rules} expert rules")
    return {"breakpoint_standards": standards, "expert_rules": rules}
