"""
Stage bookkeeping for deposit and withdrawal processes

A process carries ``current_stage`` and a ``stage_progress`` dict of
stage -> pending / in_progress / completed / failed. No transition graph is
enforced, stages are only compared by their position in the ordered list.
"""

from typing import Dict, List, Optional

DEPOSIT_STAGES: List[str] = [
    "pickup_scheduled",
    "pickup_assigned",
    "pickup_in_progress",
    "arrived_at_warehouse",
    "pre_cleaning",
    "quality_assessment",
    "ewr_generation",
    "ewr_generated",
]

WITHDRAWAL_STAGES: List[str] = [
    "verification",
    "preparation",
    "document_check",
    "physical_release",
    "quantity_confirmation",
    "receipt_update",
]

STAGE_STATUSES = ("pending", "in_progress", "completed", "failed")


def stages_for(process_type: str) -> List[str]:
    if process_type == "withdrawal":
        return WITHDRAWAL_STAGES
    return DEPOSIT_STAGES


def stage_index(stage: Optional[str], stages: List[str]) -> int:
    """Position of a stage, -1 when unknown"""
    try:
        return stages.index(stage)
    except ValueError:
        return -1


def stage_status(stage: str, current_stage: Optional[str], stage_progress: Optional[Dict[str, str]],
                 stages: List[str] = DEPOSIT_STAGES) -> str:
    """
    Status of one stage

    An explicit entry in stage_progress wins; otherwise stages before the current
    one are completed, the current one is in progress and later ones pending.
    """
    if stage_progress and stage in stage_progress:
        return stage_progress[stage]

    index = stage_index(stage, stages)
    current = stage_index(current_stage, stages)
    if index < 0 or current < 0:
        return "pending"
    if index < current:
        return "completed"
    if index == current:
        return "in_progress"
    return "pending"


def progress_percentage(process_type: str, current_stage: Optional[str],
                        stage_progress: Optional[Dict[str, str]]) -> int:
    stages = stages_for(process_type)
    if process_type == "withdrawal":
        completed = sum(1 for s in stages if (stage_progress or {}).get(s) == "completed")
        return completed * 100 // len(stages)

    current = stage_index(current_stage, stages)
    if current < 0:
        return 0
    return (current + 1) * 100 // len(stages)


def describe_stages(process_type: str, current_stage: Optional[str],
                    stage_progress: Optional[Dict[str, str]]) -> List[Dict[str, str]]:
    stages = stages_for(process_type)
    return [
        {"stage": s, "status": stage_status(s, current_stage, stage_progress, stages)}
        for s in stages
    ]


def initial_progress(process_type: str) -> Dict[str, str]:
    """First stage in progress, the rest pending"""
    stages = stages_for(process_type)
    progress = {s: "pending" for s in stages}
    if process_type != "withdrawal":
        progress[stages[0]] = "in_progress"
    return progress


def progress_until(stage: str, process_type: str, target_status: str = "in_progress") -> Dict[str, str]:
    """Every stage before ``stage`` completed, ``stage`` set to target_status, later ones pending"""
    stages = stages_for(process_type)
    target = stage_index(stage, stages)
    if target < 0:
        raise ValueError(f"Unknown stage '{stage}' for {process_type} process")

    progress = {}
    for i, s in enumerate(stages):
        if i < target:
            progress[s] = "completed"
        elif i == target:
            progress[s] = target_status
        else:
            progress[s] = "pending"
    return progress


def all_completed(process_type: str) -> Dict[str, str]:
    return {s: "completed" for s in stages_for(process_type)}


def next_stage(process_type: str, current_stage: Optional[str]) -> Optional[str]:
    """Stage after the current one, None at the last stage"""
    stages = stages_for(process_type)
    current = stage_index(current_stage, stages)
    if current < 0:
        return stages[0]
    if current + 1 >= len(stages):
        return None
    return stages[current + 1]
