"""Built-in EMS scenario and scoring templates."""

from ems_trainer.models.assessment import (
    AssessmentCriteria,
    AssessmentFinding,
    AssessmentPhase,
    FindingType,
)
from ems_trainer.models.encounter import ScenarioContext, Severity
from ems_trainer.models.templates import (
    CommonError,
    CriticalActionSpec,
    FeedbackTemplate,
    InterventionEffect,
    InterventionPhaseSpec,
    InterventionPriority,
    RedFlagRecognitionSpec,
    RedFlagSpec,
    ScenarioTemplate,
    ScriptedResponse,
)
from ems_trainer.models.vitals import (
    BreathingState,
    Consciousness,
    GCSPatch,
    GlasgowComaScale,
    PainDescriptor,
    PainPatch,
    PatientState,
    PatientStatePatch,
    StateDelta,
    VitalSigns,
    VitalSignsPatch,
)

P = AssessmentPhase


# ── Shared assessment catalog ─────────────────────────────────────────────────

STANDARD_CRITERIA = [
    AssessmentCriteria(
        id="scene_safety", category=P.PRIMARY, description="Scene safety and BSI",
        time_target=30, order=1,
    ),
    AssessmentCriteria(
        id="general_impression", category=P.PRIMARY, description="General impression and LOC",
        time_target=60, order=2, dependencies=["scene_safety"],
    ),
    AssessmentCriteria(
        id="airway", category=P.PRIMARY, description="Airway patency",
        time_target=90, order=3, dependencies=["general_impression"],
    ),
    AssessmentCriteria(
        id="breathing", category=P.PRIMARY, description="Breathing rate and quality",
        time_target=120, order=4, dependencies=["airway"],
    ),
    AssessmentCriteria(
        id="circulation", category=P.PRIMARY, description="Pulse, skin and bleeding",
        time_target=150, order=5, dependencies=["airway"],
    ),
    AssessmentCriteria(
        id="vital_signs", category=P.SECONDARY, description="Baseline vital signs",
        time_target=300, order=1,
    ),
    AssessmentCriteria(
        id="sample_history", category=P.SECONDARY, description="SAMPLE history",
        time_target=420, order=2,
    ),
    AssessmentCriteria(
        id="opqrst", category=P.SECONDARY, description="OPQRST pain history",
        order=3, required=False, dependencies=["sample_history"],
    ),
    AssessmentCriteria(
        id="physical_exam", category=P.SECONDARY, description="Head-to-toe physical exam",
        time_target=600, order=4,
    ),
    AssessmentCriteria(
        id="focused_exam", category=P.FOCUSED, description="Focused exam of chief complaint",
        time_target=720, order=1,
    ),
    AssessmentCriteria(
        id="diagnostics", category=P.FOCUSED, description="Point-of-care diagnostics",
        time_target=780, order=2, required=False,
    ),
    AssessmentCriteria(
        id="reassess_vitals", category=P.ONGOING, description="Repeat vital signs",
        order=1,
    ),
    AssessmentCriteria(
        id="reassess_interventions", category=P.ONGOING,
        description="Reassess effect of interventions", order=2,
        dependencies=["reassess_vitals"],
    ),
]


# ── Chest pain ────────────────────────────────────────────────────────────────

CHEST_PAIN = ScenarioTemplate(
    id="chest_pain_01",
    title="58-year-old male with crushing chest pain",
    scenario_type="chest_pain",
    description="Patient called 911 after 30 minutes of substernal chest pain at home.",
    vital_signs=VitalSigns(
        heart_rate=104,
        blood_pressure="158/94",
        respiratory_rate=22,
        oxygen_saturation=94,
        temperature=36.9,
        blood_glucose=132,
        gcs=GlasgowComaScale(),
    ),
    patient_state=PatientState(
        consciousness=Consciousness.ALERT,
        breathing=BreathingState.LABORED,
        pain=PainDescriptor(
            score=8, location="substernal", quality="crushing",
            radiation="left arm and jaw", severity="severe", timing="constant for 30 min",
        ),
    ),
    context=ScenarioContext(
        location="Single-family home, living room",
        time_of_day="evening",
        bystanders=["spouse"],
        resources_available=["ALS unit", "12-lead monitor", "aspirin", "nitroglycerin", "oxygen"],
        resource_eta={"cath lab team": 25},
    ),
    red_flags=[
        RedFlagSpec(
            id="rf_crushing_pain", category="cardiac",
            description="Crushing chest pain with radiation", severity=Severity.CRITICAL,
        ),
        RedFlagSpec(
            id="rf_diaphoresis", category="cardiac",
            description="Diaphoresis with nausea", severity=Severity.HIGH,
        ),
        RedFlagSpec(
            id="rf_hypotension", category="hemodynamic",
            description="Hypotension with chest pain", severity=Severity.CRITICAL,
        ),
    ],
    responses=[
        ScriptedResponse(
            keywords=["where", "pain", "hurt"],
            content="It's right here in the middle of my chest, like an elephant sitting on me. "
            "It goes down my left arm.",
            red_flag_hints=["rf_crushing_pain"],
        ),
        ScriptedResponse(
            keywords=["nause", "sweat", "sick"],
            content="I feel sick to my stomach and I can't stop sweating.",
            red_flag_hints=["rf_diaphoresis"],
        ),
        ScriptedResponse(
            keywords=["medication", "allerg", "history"],
            content="I take something for blood pressure. No allergies that I know of.",
        ),
        ScriptedResponse(
            keywords=["when", "start", "long"],
            content="About half an hour ago, while I was watching TV.",
        ),
    ],
    default_response="The patient grimaces and clutches his chest.",
    tick_delta=StateDelta(vital_signs=VitalSignsPatch(heart_rate=108, oxygen_saturation=93)),
    intervention_effects={
        "oxygen therapy": InterventionEffect(
            outcome="SpO2 improves after oxygen is applied.",
            effectiveness=0.7,
            delta=StateDelta(vital_signs=VitalSignsPatch(oxygen_saturation=97)),
        ),
        "aspirin": InterventionEffect(
            outcome="Patient chews 324 mg aspirin without difficulty.",
            effectiveness=0.8,
        ),
        "12-lead ecg": InterventionEffect(
            outcome="12-lead shows ST elevation in leads II, III and aVF.",
            effectiveness=0.9,
        ),
        "nitroglycerine": InterventionEffect(
            outcome="Chest pain decreases slightly after nitroglycerin.",
            effectiveness=0.6,
            delta=StateDelta(
                vital_signs=VitalSignsPatch(blood_pressure="138/86"),
                patient_state=PatientStatePatch(pain=PainPatch(score=6)),
            ),
        ),
    },
    criteria=STANDARD_CRITERIA,
    findings=[
        AssessmentFinding(
            id="f_airway_patent", type=FindingType.NORMAL, description="Airway patent",
            related_criteria=["airway"], expected=True,
        ),
        AssessmentFinding(
            id="f_tachypnea", type=FindingType.ABNORMAL, description="Mildly tachypneic",
            related_criteria=["breathing"], requires_intervention=True,
            suggested_interventions=["Oxygen therapy"], expected=True,
        ),
        AssessmentFinding(
            id="f_diaphoretic_skin", type=FindingType.CRITICAL,
            description="Pale, cool, diaphoretic skin", related_criteria=["circulation"],
            requires_intervention=True, suggested_interventions=["12-lead ECG"], expected=True,
        ),
        AssessmentFinding(
            id="f_external_bleeding", type=FindingType.CRITICAL,
            description="Major external bleeding", related_criteria=["circulation"],
            requires_intervention=True, suggested_interventions=["Bleeding control"],
        ),
        AssessmentFinding(
            id="f_st_elevation", type=FindingType.CRITICAL, description="Inferior ST elevation",
            related_criteria=["diagnostics", "focused_exam"], requires_intervention=True,
            suggested_interventions=["Hospital notification"], expected=True,
        ),
    ],
)


# ── Respiratory distress ──────────────────────────────────────────────────────

RESPIRATORY_DISTRESS = ScenarioTemplate(
    id="respiratory_distress_01",
    title="72-year-old female with acute shortness of breath",
    scenario_type="respiratory_distress",
    description="Nursing home staff report sudden worsening dyspnea overnight.",
    vital_signs=VitalSigns(
        heart_rate=118,
        blood_pressure="172/98",
        respiratory_rate=32,
        oxygen_saturation=86,
        temperature=37.2,
        etco2=28,
    ),
    patient_state=PatientState(
        consciousness=Consciousness.VERBAL,
        breathing=BreathingState.LABORED,
        exposure=["bilateral pedal edema"],
    ),
    context=ScenarioContext(
        location="Skilled nursing facility",
        time_of_day="night",
        bystanders=["night nurse"],
        resources_available=["ALS unit", "CPAP", "oxygen", "nebulizer"],
    ),
    red_flags=[
        RedFlagSpec(
            id="rf_hypoxia", category="respiratory",
            description="SpO2 < 90%", severity=Severity.CRITICAL,
        ),
        RedFlagSpec(
            id="rf_accessory_muscles", category="respiratory",
            description="Accessory muscle use", severity=Severity.HIGH,
        ),
    ],
    responses=[
        ScriptedResponse(
            keywords=["breath", "breathe"],
            content="I... can't... catch my breath.",
            red_flag_hints=["rf_accessory_muscles"],
        ),
    ],
    default_response="The patient can only answer in one- or two-word sentences.",
    tick_delta=StateDelta(vital_signs=VitalSignsPatch(oxygen_saturation=84, respiratory_rate=34)),
    intervention_effects={
        "oxygen therapy": InterventionEffect(
            outcome="SpO2 rises slowly with a non-rebreather.",
            effectiveness=0.6,
            delta=StateDelta(vital_signs=VitalSignsPatch(oxygen_saturation=90)),
        ),
        "cpap": InterventionEffect(
            outcome="Work of breathing visibly decreases on CPAP.",
            effectiveness=0.9,
            delta=StateDelta(
                vital_signs=VitalSignsPatch(oxygen_saturation=95, respiratory_rate=24),
                patient_state=PatientStatePatch(breathing=BreathingState.NORMAL),
            ),
        ),
    },
    criteria=STANDARD_CRITERIA,
    findings=[
        AssessmentFinding(
            id="f_accessory_muscle_use", type=FindingType.CRITICAL,
            description="Accessory muscle use", related_criteria=["breathing"],
            requires_intervention=True, suggested_interventions=["CPAP"], expected=True,
        ),
        AssessmentFinding(
            id="f_crackles", type=FindingType.ABNORMAL, description="Bilateral crackles",
            related_criteria=["focused_exam"], expected=True,
        ),
    ],
)


# ── Trauma ────────────────────────────────────────────────────────────────────

TRAUMA = ScenarioTemplate(
    id="trauma_01",
    title="24-year-old motorcyclist ejected at highway speed",
    scenario_type="trauma",
    description="Single-vehicle motorcycle crash; rider found 10 m from the bike.",
    vital_signs=VitalSigns(
        heart_rate=126,
        blood_pressure="98/62",
        respiratory_rate=26,
        oxygen_saturation=93,
        temperature=36.1,
        gcs=GlasgowComaScale(eyes=3, verbal=4, motor=6),
    ),
    patient_state=PatientState(
        consciousness=Consciousness.VERBAL,
        disability="Numbness and weakness in both legs",
        exposure=["open left femur fracture", "road rash to left arm"],
        pain=PainDescriptor(score=9, location="left thigh", severity="severe"),
    ),
    context=ScenarioContext(
        location="Rural highway shoulder",
        time_of_day="afternoon",
        weather="light rain",
        bystanders=["passing motorist"],
        resources_available=["BLS unit", "tourniquet", "cervical collar", "long board"],
        resource_eta={"ALS intercept": 8, "air medical": 20},
    ),
    red_flags=[
        RedFlagSpec(
            id="rf_neuro_deficit", category="neurological",
            description="Neurological deficits", severity=Severity.CRITICAL,
        ),
    ],
    responses=[
        ScriptedResponse(
            keywords=["feel", "legs", "move"],
            content="I can't really feel my legs... they're tingling.",
            red_flag_hints=["rf_neuro_deficit"],
        ),
        ScriptedResponse(
            keywords=["pain", "hurt"],
            content="My leg! My left leg is killing me.",
        ),
        ScriptedResponse(
            keywords=["remember", "happen"],
            content="I don't know... I was riding and then I was on the ground.",
        ),
    ],
    default_response="The patient moans and tries to sit up.",
    tick_delta=StateDelta(
        vital_signs=VitalSignsPatch(
            heart_rate=132, blood_pressure="90/58", gcs=GCSPatch(eyes=3, verbal=3)
        ),
    ),
    intervention_effects={
        "bleeding control": InterventionEffect(
            outcome="Tourniquet applied high on the left thigh; bleeding stops.",
            effectiveness=0.9,
            delta=StateDelta(vital_signs=VitalSignsPatch(heart_rate=118)),
        ),
        "spinal motion restriction": InterventionEffect(
            outcome="Cervical collar applied and patient secured to the long board.",
            effectiveness=0.8,
        ),
    },
    criteria=STANDARD_CRITERIA,
    findings=[
        AssessmentFinding(
            id="f_femur_bleeding", type=FindingType.CRITICAL,
            description="Arterial bleeding from open femur fracture",
            related_criteria=["circulation"], requires_intervention=True,
            suggested_interventions=["Bleeding control"], expected=True,
        ),
        AssessmentFinding(
            id="f_lower_extremity_deficit", type=FindingType.CRITICAL,
            description="Bilateral lower extremity sensory deficit",
            related_criteria=["physical_exam", "focused_exam"], requires_intervention=True,
            suggested_interventions=["Spinal motion restriction"], expected=True,
        ),
    ],
)


# ── Scoring templates ─────────────────────────────────────────────────────────

FEEDBACK_TEMPLATES: dict[str, FeedbackTemplate] = {
    "chest_pain": FeedbackTemplate(
        category="Chest Pain - Possible ACS",
        critical_actions=[
            CriticalActionSpec(
                action="12-Lead ECG",
                rationale="Early identification of STEMI enables rapid cath lab activation",
                time_target=300,
            ),
            CriticalActionSpec(
                action="Aspirin",
                rationale="Early aspirin reduces mortality in ACS",
                time_target=600,
            ),
            CriticalActionSpec(
                action="Hospital notification",
                rationale="Early notification allows preparation of appropriate resources",
                time_target=900,
            ),
        ],
        red_flag_recognition=[
            RedFlagRecognitionSpec(
                finding="Crushing chest pain with radiation",
                significance="Classic ACS presentation",
                expected_action=["12-lead ECG", "Aspirin"],
            ),
            RedFlagRecognitionSpec(
                finding="Diaphoresis with nausea",
                significance="Autonomic response suggesting ACS",
                expected_action=["Nitroglycerine"],
            ),
            RedFlagRecognitionSpec(
                finding="Hypotension with chest pain",
                significance="Possible cardiogenic shock",
                expected_action=["Fluid bolus", "Immediate transport"],
            ),
        ],
        intervention_sequence=[
            InterventionPhaseSpec(
                priority=InterventionPriority.IMMEDIATE,
                interventions=["12-lead ECG", "Aspirin", "Vital signs"],
                rationale="Immediate diagnosis and mortality reduction",
            ),
            InterventionPhaseSpec(
                priority=InterventionPriority.URGENT,
                interventions=["IV access", "Nitroglycerine", "Additional 12-leads"],
                rationale="Preparation for treatment and monitoring",
            ),
            InterventionPhaseSpec(
                priority=InterventionPriority.PRIORITY,
                interventions=["Serial vital signs", "Ongoing assessment"],
                rationale="Monitor for deterioration",
            ),
        ],
        intervention_steps={
            "IV access": [
                "Explain procedure to patient",
                "Select appropriate insertion site",
                "Apply tourniquet",
                "Clean site with antiseptic",
                "Insert IV catheter",
                "Secure catheter and tubing",
            ],
        },
        common_errors=[
            CommonError(
                error="Delayed 12-lead ECG",
                impact="Delayed recognition of STEMI",
                correction="Obtain 12-lead within 5 minutes of patient contact",
            ),
            CommonError(
                error="Nitroglycerine before 12-lead",
                impact="May mask STEMI changes",
                correction="Always obtain initial 12-lead before nitroglycerine",
            ),
        ],
        excellent_care_markers=[
            "12-lead ECG within 5 minutes",
            "Early aspirin administration",
            "Appropriate hospital notification",
        ],
        learning_points=[
            "Time is muscle in cardiac emergencies",
            "Early recognition and treatment improves outcomes",
            "Hospital notification is critical for STEMI",
        ],
    ),
    "respiratory_distress": FeedbackTemplate(
        category="Respiratory Emergency",
        critical_actions=[
            CriticalActionSpec(action="Oxygen therapy", rationale="Address hypoxia", time_target=120),
            CriticalActionSpec(
                action="Position of comfort",
                rationale="Optimize respiratory effort",
                time_target=180,
            ),
            CriticalActionSpec(action="CPAP", rationale="Reduce work of breathing", time_target=600),
        ],
        red_flag_recognition=[
            RedFlagRecognitionSpec(
                finding="SpO2 < 90%",
                significance="Severe hypoxia",
                expected_action=["Oxygen therapy"],
            ),
            RedFlagRecognitionSpec(
                finding="Accessory muscle use",
                significance="Increased work of breathing",
                expected_action=["CPAP"],
            ),
        ],
        intervention_sequence=[
            InterventionPhaseSpec(
                priority=InterventionPriority.IMMEDIATE,
                interventions=["Oxygen therapy", "Position of comfort", "Vital signs"],
                rationale="Address immediate respiratory needs",
            ),
            InterventionPhaseSpec(
                priority=InterventionPriority.URGENT,
                interventions=["CPAP", "Medication administration", "IV access"],
                rationale="Provide definitive interventions",
            ),
        ],
        common_errors=[
            CommonError(
                error="Delayed oxygen administration",
                impact="Prolonged hypoxia",
                correction="Provide oxygen within 2 minutes",
            ),
        ],
        excellent_care_markers=[
            "Early oxygen administration",
            "Appropriate positioning",
            "Proper CPAP application",
        ],
        learning_points=[
            "Early intervention prevents deterioration",
            "Position affects breathing effectiveness",
            "Continuous monitoring is essential",
        ],
    ),
    "trauma": FeedbackTemplate(
        category="Trauma Assessment",
        critical_actions=[
            CriticalActionSpec(
                action="Bleeding control", rationale="Prevent hemorrhagic shock", time_target=180
            ),
            CriticalActionSpec(
                action="Spinal motion restriction",
                rationale="Prevent secondary injury",
                time_target=300,
            ),
            CriticalActionSpec(
                action="Trauma center notification",
                rationale="Enable appropriate resource preparation",
                time_target=600,
            ),
        ],
        red_flag_recognition=[
            RedFlagRecognitionSpec(
                finding="Neurological deficits",
                significance="Possible spinal cord injury",
                expected_action=["Spinal motion restriction"],
            ),
        ],
        intervention_sequence=[
            InterventionPhaseSpec(
                priority=InterventionPriority.IMMEDIATE,
                interventions=["Bleeding control", "Spinal motion restriction", "Primary survey"],
                rationale="Address immediate life threats",
            ),
            InterventionPhaseSpec(
                priority=InterventionPriority.URGENT,
                interventions=["IV access", "Pain management", "Secondary survey"],
                rationale="Stabilize and prevent deterioration",
            ),
        ],
        excellent_care_markers=[
            "Rapid bleeding control",
            "Appropriate spinal precautions",
            "Early trauma center notification",
        ],
        learning_points=[
            "Mechanism predicts injury patterns",
            "Time is critical in trauma",
        ],
    ),
}


BUILTIN_SCENARIOS: list[ScenarioTemplate] = [CHEST_PAIN, RESPIRATORY_DISTRESS, TRAUMA]
