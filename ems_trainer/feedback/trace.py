"""Conversion of a finished encounter into an evaluator trace."""

from ems_trainer.models.encounter import Encounter
from ems_trainer.models.feedback import (
    ActionRecord,
    InterventionRecord,
    PerformanceTrace,
    RedFlagIdentification,
)


def build_trace(encounter: Encounter, scenario_type: str) -> PerformanceTrace:
    """Build the PerformanceTrace for an encounter.

    Red flags are reported by description, which is what scoring templates
    name them by. A flag's associated actions are the interventions performed
    at or after the moment it was identified.
    """
    actions = [
        ActionRecord(action=i.name, timestamp=i.timestamp, category=i.type.value)
        for i in encounter.interventions
    ]

    flags = []
    for flag in encounter.red_flags:
        if not flag.identified or flag.time_identified is None:
            continue
        flags.append(
            RedFlagIdentification(
                flag=flag.description,
                time_to_identification=flag.time_identified,
                associated_actions=[
                    i.name for i in encounter.interventions if i.timestamp >= flag.time_identified
                ],
            )
        )

    interventions = [
        InterventionRecord(
            name=i.name,
            timing=i.timestamp,
            sequence=i.sequence,
            completed_steps=list(i.completed_steps),
        )
        for i in encounter.interventions
    ]

    return PerformanceTrace(
        scenario_type=scenario_type,
        actions=actions,
        identified_red_flags=flags,
        interventions=interventions,
        patient_outcome=encounter.status.value,
    )
