"""
FRA Report Sections
===================

Section order and content of the Fire Risk Assessment document.

Both renderers (python-docx and the weasyprint HTML template) consume the
same list of blocks produced by `build_sections`, so the DOCX and the PDF
never drift apart in order or wording.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from storesafe.core.config import settings
from storesafe.schemas.fra import FRAReportData

EMPTY = "—"
MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


@dataclass(frozen=True)
class FRASection:
    id: str
    title: str
    page_break_after: bool = True


FRA_SECTIONS: List[FRASection] = [
    FRASection("cover", "Fire Risk Assessment - Review"),
    FRASection("photos-toc", "Photo of Site / Building / Premises"),
    FRASection("purpose", "Purpose of This Assessment"),
    FRASection("regulatory-reform", "Regulatory Reform (Fire Safety) Order 2005"),
    FRASection("travel-distances", "Travel Distances"),
    FRASection("category-l", "Category L Fire Alarm Systems - Life Protection"),
    FRASection("fire-resistance", "Fire Resistance"),
    FRASection("terms-limitations", "Fire Risk Assessment – Terms, Conditions and Limitations"),
    FRASection("enforcement-insurers", "Enforcement and Insurers / Specialist Advice / Liability"),
    FRASection("about-property", "About the Property"),
    FRASection("fire-alarm", "Fire Alarm Systems"),
    FRASection("emergency-lighting", "Emergency Lighting"),
    FRASection("fire-extinguishers", "Portable Fire-Fighting Equipment"),
    FRASection("sprinkler", "Sprinkler & Smoke Extraction"),
    FRASection("fire-rescue-access", "Fire and Rescue Services Access"),
    FRASection("stage1-stage2", "Stage 1 – Fire Hazards / Stage 2 – People at Risk"),
    FRASection("stage3", "Stage 3 – Evaluate, remove, reduce and protect from risk"),
    FRASection("fire-plan", "Fire Plan"),
    FRASection("fra-report", "Fire Risk Assessment Report"),
    FRASection("risk-rating", "Risk Rating"),
    FRASection("action-plan", "Action Plan"),
]

TOC_ITEMS = (
    "Purpose of This Assessment",
    "Regulatory Reform (Fire Safety) Order 2005 – Fire Risk Assessment",
    "Travel Distances",
    "Category L Fire Alarm Systems - Life Protection",
    "Fire Resistance",
    "Fire Risk Assessment – Terms, Conditions and Limitations",
    "About the Property",
    "Stage 1 – Fire Hazards",
    "Stage 2 – People at Risk",
    "Stage 3 – Evaluate, remove, reduce and protect from risk",
    "Fire Plan",
    "Risk Rating",
    "Action Plan",
)


# ==========================
# Content blocks
# ==========================

@dataclass
class Heading:
    text: str
    level: int = 2


@dataclass
class Para:
    text: str
    bold: bool = False


@dataclass
class LabelValue:
    label: str
    value: str


@dataclass
class Grid:
    """A bordered table. `title` spans all columns below the header row."""

    headers: Sequence[str]
    rows: List[Sequence[str]]
    widths: Sequence[int] = ()
    title: Optional[str] = None
    empty_text: Optional[str] = None


@dataclass
class RenderedSection:
    section: FRASection
    blocks: list = field(default_factory=list)


# ==========================
# Helpers
# ==========================

def _or_empty(value: Optional[str], fallback: str = EMPTY) -> str:
    return value if value else fallback


def _joined(items: Sequence[str], fallback: str) -> str:
    return "; ".join(items) if items else fallback


def sanitize_for_filename(value: str) -> str:
    value = re.sub(r"[–—]", "-", value)
    value = re.sub(r'[/\\:*?"<>|\n\r]', "", value)
    return re.sub(r"\s+", " ", value).strip()[:80]


def format_filename_date(raw: Optional[str]) -> str:
    """'2026-01-22' or '22 January 2026' -> '22-Jan-2026'."""
    trimmed = (raw or "").strip()
    if not trimmed:
        return "no-date"
    iso = re.match(r"^(\d{4})-(\d{2})-(\d{2})", trimmed)
    if iso:
        year, month, day = iso.groups()
        index = int(month) - 1
        name = MONTHS[index] if 0 <= index < 12 else month
        return f"{day}-{name}-{year}"
    long_form = re.match(r"^(\d{1,2})\s+(\w+)\s+(\d{4})$", trimmed)
    if long_form:
        day, month_name, year = long_form.groups()
        return f"{day}-{month_name[:3]}-{year}"
    return sanitize_for_filename(trimmed) or "no-date"


def fra_filename(premises: Optional[str], assessment_date: Optional[str], extension: str = "pdf") -> str:
    sanitized = sanitize_for_filename(premises or "")
    if not sanitized:
        return f"fra-report.{extension}"
    return f"FRA - {sanitized} {format_filename_date(assessment_date)}.{extension}"


# ==========================
# Section builders
# ==========================

def _cover(data: FRAReportData) -> list:
    company = settings.FRA_COMPANY_NAME
    blocks = [
        Heading("Fire Risk Assessment - Review", level=1),
        Heading(data.premises or EMPTY),
        LabelValue("Client Name", data.client_name),
        LabelValue("Premises", data.premises),
        LabelValue("Address", data.address),
        LabelValue(
            "Responsible person (as defined by the Regulatory Reform (Fire Safety) Order 2005)",
            data.responsible_person,
        ),
        LabelValue("Ultimate responsible person", data.ultimate_responsible_person),
        LabelValue(f"Appointed Person at {data.premises}", data.appointed_person),
        Para("Responsibilities of Appointed Person", bold=True),
        Para(
            "Ensuring effective communication and coordination of emergency response arrangements; "
            "Oversight of Fire Wardens and Fire Marshals; Ensuring fire drills are conducted and "
            "recorded; Ensuring staff fire safety training is completed and maintained; "
            "Communicating non-compliance and concerns to Head Office; Implementing and maintaining "
            "the site Fire Safety Plan."
        ),
        LabelValue("Name of person undertaking the assessment", f"{data.assessor_name} – {company}"),
        LabelValue("Assessment date", _or_empty(data.assessment_date, "Not specified")),
    ]
    if data.assessment_start_time:
        blocks.append(LabelValue("Assessment start time", data.assessment_start_time))
    if data.assessment_end_time:
        blocks.append(LabelValue("Assessment end time", data.assessment_end_time))
    return blocks


def _photos_toc(data: FRAReportData) -> list:
    return [
        Heading("Photo of Site / Building / Premises"),
        Heading("Table of Contents"),
        Grid(["Title", "Page"], [[item, EMPTY] for item in TOC_ITEMS], widths=[85, 15]),
    ]


def _purpose(data: FRAReportData) -> list:
    return [
        Heading("Purpose of This Assessment"),
        Para(
            "The purpose of this Fire Risk Assessment is to provide a suitable and sufficient "
            "assessment of the risk to life from fire within the above premises and to confirm that "
            "appropriate fire safety measures are in place to comply with current fire safety legislation."
        ),
        Para("This assessment relates solely to life safety and does not address business continuity or property protection."),
        Para(
            "This document represents a live, operational Fire Risk Assessment and supersedes the "
            "pre-opening assumptions contained within the previous assessment."
        ),
    ]


def _regulatory_reform(data: FRAReportData) -> list:
    return [
        Heading("Regulatory Reform (Fire Safety) Order 2005"),
        Heading("FIRE RISK ASSESSMENT"),
        Para("STEP 1: Identify fire hazards – Sources of ignition; Sources of fuel; Work processes."),
        Para("STEP 2: Identify the location of people at significant risk in case of fire."),
        Para(
            "STEP 3: Evaluate the risk – Are existing fire safety measures adequate? Control of ignition "
            "sources; Fire detection/warning; Means of escape; Means of fighting fire; Maintenance and "
            "testing; Fire safety training; Emergency services provisions. Carry out any improvements needed."
        ),
        Para("STEP 4: Record findings and action taken – Prepare emergency plan; Inform, instruct and train employees."),
        Para("STEP 5: Keep assessment under review – Revise if situation changes."),
    ]


TRAVEL_HEADERS = (
    "No.",
    "Category of risk",
    "Distance of travel within room, work-room or enclosure",
    "Total distance of travel",
)

TRAVEL_TABLES = (
    ("TABLE A: Escape in more than one direction (Factories)",
     [["1", "High", "12m", "25m"], ["2", "Normal", "25m", "45m"], ["3", "Low", "35m", "60m"]]),
    ("TABLE B: Escape in one direction only (Factories)",
     [["4", "High", "6m", "12m"], ["5", "Normal", "12m", "25m"], ["6", "Low", "25m", "45m"]]),
    ("TABLE C: Escape in more than one direction (Shops)",
     [["1", "High", "12m", "25m"], ["2", "Normal", "25m", "45m"]]),
    ("TABLE D: Escape in one direction only (Shops)",
     [["3", "High", "6m", "12m"], ["4", "Normal", "12m", "25m"]]),
    ("TABLE E: Escape in more than one direction (Offices)", [["1", "Normal", "25m", "45m"]]),
    ("TABLE F: Escape in one direction only (Offices)", [["2", "Normal", "12m", "25m"]]),
)


def _travel_distances(data: FRAReportData) -> list:
    blocks = [
        Heading("Travel Distances:"),
        Para(
            "The distance of travel should be measured as being the actual distance to be travelled "
            "between any point in the building and the nearest storey exit."
        ),
        Para("The distance of travel for escape are governed by recommended maximum distances and these are detailed below:"),
    ]
    for title, rows in TRAVEL_TABLES:
        blocks.append(Grid(TRAVEL_HEADERS, rows, widths=[5, 25, 35, 35], title=title))
    blocks.extend([
        Para(
            "Where a room is an inner room (i.e. a room accessible only via an access room) the "
            "distance to the exit from the access room should be a maximum of:"
        ),
        Para("• If the inner room is of 'high risk' 6m"),
        Para("• If the access room is of 'normal risk' 12m"),
        Para("• If the access room is of 'low risk' 25m"),
    ])
    return blocks


def _category_l(data: FRAReportData) -> list:
    return [
        Heading("Category L Fire Alarm Systems - Life Protection"),
        Para("Life protection systems can be divided into various categories, L1, L2, L3, L4, L5."),
        Para("L1 provides for Automatic Fire Detection (AFD) to be installed into all areas of a building."),
        Para(
            "L2 provides Automatic Fire Detection (AFD) as defined in L3 as well as high risk or hazardous "
            "areas. Examples: Kitchens, boiler rooms, sleeping risk, storerooms if not fire resistant or "
            "if smoke could affect escape routes."
        ),
        Para(
            "L3 Automatic Fire Detection (AFD) with smoke detection should be installed on escape routes "
            "with detection in rooms opening onto escape routes."
        ),
        Para("L4 provides Automatic Fire Detection (AFD) within escape routes only."),
        Para(
            "L5 is installed in building with a specific risk that has been identified. An example "
            "would be L5/M for an area of high risk requiring detection."
        ),
    ]


FIRE_RESISTANCE_ROWS = [
    ["Floor immediately over a basement", EMPTY, EMPTY, "60"],
    ["All separating floors", EMPTY, EMPTY, "30 (1)"],
    ["Separating a stairway", "30", "30 (2)", EMPTY],
    ["Separating a protected lobby", "30", "30", EMPTY],
    ["Separating a lift well", "30 (4)", "30 (3)", EMPTY],
    ["Separating a lift motor room", "30", "30", EMPTY],
    ["Separating a protected route", "30", "30 (2)", EMPTY],
    ["Separating compartments", "60", "60", EMPTY],
    ["In a corridor to sub-divide it", "30", "30", EMPTY],
    ["In a stairway from ground floor to basement", EMPTY, "2 x 30 or 1 x 60", EMPTY],
]


def _fire_resistance(data: FRAReportData) -> list:
    return [
        Heading("Fire Resistance:"),
        Para(
            "There are standards recommended for the fire resistance of the elements of a building "
            "structure (e.g. floors, walls etc.) and these are given in the table below."
        ),
        Grid(
            ["Element being separated or protected", "Walls (mins)", "Fire-resisting doors (mins)", "Floors (mins)"],
            FIRE_RESISTANCE_ROWS,
            widths=[45, 15, 20, 20],
        ),
        Para("(1) Fire/smoke stopping cavity barriers and fire dampers in ductwork"),
        Para("(2) Excluding incomplete floors e.g. a gallery floor"),
        Para("(3) Except a door to a WC containing no fire risk"),
        Para("(4) Except a lift well contained within a stairway enclosure"),
    ]


def _terms_limitations(data: FRAReportData) -> list:
    audit_date = data.assessment_date or "the assessment date"
    return [
        Heading("Fire Risk Assessment – Terms, Conditions and Limitations"),
        Para(
            "This Fire Risk Assessment has been undertaken in accordance with the requirements of the "
            "Regulatory Reform (Fire Safety) Order 2005 (as applicable in Scotland) and relevant supporting guidance."
        ),
        Para(
            "It is agreed that, in order to enable a thorough inspection and assessment, the Fire Risk "
            "Assessor was permitted open and free access to all areas of the premises reasonably "
            "accessible at the time of the assessment and review."
        ),
        Para(
            "It is the responsibility of the Responsible Person to ensure that all relevant personnel are "
            "aware of the Fire Risk Assessor's visit and that the assessor is not hindered in the carrying "
            "out of their duties."
        ),
        Para("Scope of Assessment", bold=True),
        Para("This Fire Risk Assessment is based on:"),
        Para("• A visual inspection of the premises"),
        Para("• Review of fire safety arrangements in place at the time of the assessment"),
        Para(
            "• Consideration of documented records made available, including fire alarm testing, "
            "emergency lighting tests and fire drill records"
        ),
        Para(f"• Observations made during a Health & Safety and Fire Safety audit conducted on {audit_date}"),
        Para(
            "No intrusive inspection, destructive testing, or specialist testing of fire systems, "
            "structural elements, luminance levels, alarm sound pressure levels or HVAC systems has been "
            "undertaken as part of this assessment."
        ),
        Para("Limitations", bold=True),
        Para(
            "Whilst all reasonable care has been taken to identify matters that may give rise to fire "
            "risk, this assessment cannot be regarded as a guarantee that all fire hazards or deficiencies "
            "have been identified."
        ),
        Para(
            "The assessment is based on a sample of conditions observed at the time of inspection. It is "
            "possible that this may not be fully representative of all conditions present at all times."
        ),
        Para("The Fire Risk Assessor cannot be held responsible for:"),
        Para("• Failure to implement recommendations"),
        Para("• Deterioration in standards following the assessment"),
        Para("• Changes in use, layout, occupancy or management practices after the date of assessment"),
        Para("• Acts or omissions of employees, contractors or third parties"),
    ]


def _enforcement_insurers(data: FRAReportData) -> list:
    return [
        Heading("Enforcement and Insurers"),
        Para(
            "The Fire Risk Assessor should be notified of any visit, or intended visit, by an enforcing "
            "authority or insurer relating to fire safety matters."
        ),
        Para(
            "Where requirements or recommendations are made by an enforcing authority, insurer or "
            "competent third party, it is the responsibility of the Responsible Person to ensure "
            "compliance within appropriate timescales."
        ),
        Heading("Specialist Advice"),
        Para(
            "Where hazards are identified that, in the opinion of the Fire Risk Assessor, require "
            "specialist advice or further investigation, this will be highlighted. The decision to appoint "
            "specialist contractors or consultants, and any associated costs, remains the responsibility "
            "of the Responsible Person."
        ),
        Heading("Liability"),
        Para(
            f"{settings.FRA_COMPANY_NAME} limits its liability for any loss, damage or injury (including "
            "consequential or indirect loss) arising from the performance of this Fire Risk Assessment to "
            "the extent permitted by law and as defined by the company's professional indemnity insurance."
        ),
    ]


def _about_property(data: FRAReportData) -> list:
    blocks = [
        Heading("About the Property:"),
        LabelValue("Approximate build date", data.build_date),
        LabelValue("Property type", data.property_type),
        Para("Description of the Premises", bold=True),
        Para(_or_empty(data.description)),
        LabelValue("Number of Floors", data.number_of_floors),
        LabelValue("Approximate Floor Area", data.floor_area),
    ]
    if data.floor_area_comment:
        blocks.append(LabelValue("Floor area comment", data.floor_area_comment))
    blocks.append(LabelValue("Occupancy and Capacity", data.occupancy))
    if data.occupancy_comment:
        blocks.append(LabelValue("Occupancy comment", data.occupancy_comment))
    blocks.append(LabelValue("Operating hours", data.operating_hours))
    if data.operating_hours_comment:
        blocks.append(LabelValue("Operating hours comment", data.operating_hours_comment))
    blocks.extend([
        Para("Sleeping Risk", bold=True),
        Para(_or_empty(data.sleeping_risk)),
        Para("Internal Fire Doors:", bold=True),
        Para(_or_empty(data.internal_fire_doors)),
        Para("History of Fires or Fire-Related Incidents in the Previous 12 Months:", bold=True),
        Para(_or_empty(data.history_of_fires)),
    ])
    return blocks


def _fire_alarm(data: FRAReportData) -> list:
    blocks = [
        Heading("Brief description of any fire alarm or automatic fire/heat/smoke detection:"),
        Para(_or_empty(data.fire_alarm_description)),
        Para("Location of Fire Panel:", bold=True),
        Para(_or_empty(data.fire_alarm_panel_location)),
    ]
    if data.fire_alarm_panel_faults:
        blocks.append(LabelValue("Is panel free of faults", data.fire_alarm_panel_faults))
    blocks.append(Para(
        "(NB: This assessment is based on visual inspection and review of available records. No "
        "physical testing of the fire alarm or emergency lighting systems was undertaken as part of "
        "this Fire Risk Assessment.)"
    ))
    return blocks


def _emergency_lighting(data: FRAReportData) -> list:
    blocks = [
        Heading("Brief description of any emergency lighting systems:"),
        Para(_or_empty(data.emergency_lighting_description)),
    ]
    if data.emergency_lighting_test_switch_location:
        blocks.append(LabelValue(
            "Location of Emergency Lighting Test Switch", data.emergency_lighting_test_switch_location
        ))
    blocks.append(Para(
        "(NB: This assessment is based on visual inspection and review of available records only. No "
        "physical testing of the emergency lighting system was undertaken as part of this assessment.)"
    ))
    return blocks


def _fire_extinguishers(data: FRAReportData) -> list:
    return [
        Heading("Brief description of any portable fire-fighting equipment:"),
        Para(_or_empty(data.fire_extinguishers_description)),
        Para(
            "Staff receive fire safety awareness training as part of their induction and refresher "
            "training, which includes instruction on the purpose of fire extinguishers. Company fire "
            "safety arrangements place emphasis on raising the alarm and evacuation, rather than firefighting."
        ),
    ]


def _sprinkler(data: FRAReportData) -> list:
    return [
        Heading("Brief Description of Sprinkler & Smoke Extraction Strategy:"),
        Para(_or_empty(data.sprinkler_description)),
        LabelValue("Sprinkler clearance", _or_empty(data.sprinkler_clearance)),
    ]


def _fire_rescue_access(data: FRAReportData) -> list:
    return [
        Heading("Brief description of access for Fire and Rescue Services:"),
        Para(_or_empty(
            data.fire_rescue_access_description,
            "Entry to the site can be gained via the main front entrance doors and via the rear service "
            "entry/loading bay. There is suitable access for Fire and Rescue Services from the "
            "surrounding road network.",
        )),
        LabelValue("Fire lift", "N/A"),
        LabelValue("Dry / wet riser", "N/A"),
        LabelValue("Fire hydrant", "N/A"),
        LabelValue("Open water", "N/A"),
    ]


def _stage1_stage2(data: FRAReportData) -> list:
    return [
        Heading("Stage 1 – Fire Hazards"),
        Para("Sources of ignition:", bold=True),
        Para(_joined(data.sources_of_ignition, "None identified")),
        Para("Sources of fuel:", bold=True),
        Para(_joined(data.sources_of_fuel, "None identified")),
        Para("Sources of oxygen:", bold=True),
        Para(_joined(data.sources_of_oxygen, "Normal atmosphere")),
        Heading("Stage 2 – People at Risk"),
        Para("The following persons may be at risk in the event of a fire within the premises:"),
        Para(_joined(data.people_at_risk, "Persons in the premises.")),
        Para("There are no sleeping occupants within the premises."),
    ]


def _stage3(data: FRAReportData) -> list:
    blocks = [
        Heading("Stage 3 – Evaluate, remove, reduce and protect from risk"),
        Para("Significant findings:", bold=True),
        Para(_joined(data.significant_findings, EMPTY)),
        Para("Recommended controls:", bold=True),
        Para(_joined(data.recommended_controls, EMPTY)),
        LabelValue("Fire alarm description", data.fire_alarm_description),
        LabelValue("Fire alarm panel location", data.fire_alarm_panel_location),
        LabelValue("Emergency lighting description", data.emergency_lighting_description),
        LabelValue("Fire extinguishers description", data.fire_extinguishers_description),
    ]
    if data.has_sprinklers:
        blocks.append(LabelValue("Sprinkler description", data.sprinkler_description))
        blocks.append(LabelValue("Sprinkler clearance", data.sprinkler_clearance))
    return blocks


FIRE_PLAN_TEXT = (
    (
        "Roles and identity of employees with specific responsibilities in the event of a fire",
        "Store management are designated as Fire Wardens and have overall responsibility for "
        "coordinating the emergency response within the premises. Supervisory staff may act as Fire "
        "Marshals. All staff are responsible for following fire safety instructions and evacuating "
        "immediately on hearing the fire alarm. No person is permitted to re-enter the premises until "
        "authorised to do so by the Fire and Rescue Service.",
    ),
    (
        "Arrangements for the safe evacuation of people identified at risk",
        "All persons within the premises will be instructed to evacuate immediately via the nearest "
        "available fire exit upon activation of the fire alarm. Escape routes are clearly identified "
        "and lead to a place of relative safety.",
    ),
    (
        "How the Fire and Rescue Service will be contacted",
        "The Fire and Rescue Service will be contacted via the emergency services by dialling 999 or 112.",
    ),
    (
        "Procedures for liaising with the Fire and Rescue Service",
        "On arrival of the Fire and Rescue Service, store management will liaise with the attending "
        "officers, providing relevant information regarding the premises and fire alarm activation.",
    ),
    (
        "Arrangements for fire safety training and drills",
        "All staff receive fire safety training as part of their induction and refresher training. "
        "Fire drills are conducted at appropriate intervals and records are maintained.",
    ),
)


def _fire_plan(data: FRAReportData) -> list:
    blocks = [Heading("Fire Plan")]
    for label, text in FIRE_PLAN_TEXT:
        blocks.append(Para(label, bold=True))
        blocks.append(Para(text))
    blocks.append(Para("Assessment review", bold=True))
    blocks.append(Grid(
        ["Assessment review date", "Completed by", "Signature"],
        [[data.assessment_date, data.assessor_name, ""]],
        widths=[33, 34, 33],
    ))
    return blocks


def _fra_report(data: FRAReportData) -> list:
    return [
        Heading("Fire Risk Assessment Report"),
        LabelValue("Assessor", data.assessor_name),
        LabelValue("Company name", settings.FRA_COMPANY_NAME.upper()),
        LabelValue("Date of assessment", data.assessment_date),
        Para("Introduction", bold=True),
        Para(
            f"The client is {data.client_name}, a national branded fashion apparel and footwear retailer. "
            f"This Fire Risk Assessment relates solely to their retail premises at {data.premises}. The "
            "premises is situated within an established managed shopping centre environment."
        ),
        Para("Overview of the workplace being assessed", bold=True),
        Para(
            "The primary function of the premises is the retail sale of branded fashion apparel and "
            "footwear to members of the public. The store operates as a standard high-street retail "
            "environment with a public sales area and associated back-of-house accommodation."
        ),
        Para("Overview of the significant findings related to fire hazards", bold=True),
        Para(_joined(
            data.significant_findings,
            "No significant deficiencies were identified that would prevent the safe evacuation of "
            "occupants in the event of a fire.",
        )),
        Para("Proposed Recommended Controls", bold=True),
        Para(_joined(data.recommended_controls, EMPTY)),
    ]


def _risk_rating(data: FRAReportData) -> list:
    return [
        Heading("Risk Rating"),
        LabelValue("Likelihood", _or_empty(data.risk_rating_likelihood)),
        LabelValue("Consequences", _or_empty(data.risk_rating_consequences)),
        LabelValue("Summary", _or_empty(data.summary_of_risk_rating)),
    ]


def _action_plan(data: FRAReportData) -> list:
    rows = [
        [item.recommendation, item.priority, _or_empty(item.due_note)]
        for item in data.action_plan_items
    ]
    return [
        Heading("Action Plan"),
        Grid(
            ["Recommendation", "Priority", "Due"],
            rows,
            widths=[55, 25, 20],
            empty_text="No actions recorded.",
        ),
    ]


SECTION_BUILDERS = {
    "cover": _cover,
    "photos-toc": _photos_toc,
    "purpose": _purpose,
    "regulatory-reform": _regulatory_reform,
    "travel-distances": _travel_distances,
    "category-l": _category_l,
    "fire-resistance": _fire_resistance,
    "terms-limitations": _terms_limitations,
    "enforcement-insurers": _enforcement_insurers,
    "about-property": _about_property,
    "fire-alarm": _fire_alarm,
    "emergency-lighting": _emergency_lighting,
    "fire-extinguishers": _fire_extinguishers,
    "sprinkler": _sprinkler,
    "fire-rescue-access": _fire_rescue_access,
    "stage1-stage2": _stage1_stage2,
    "stage3": _stage3,
    "fire-plan": _fire_plan,
    "fra-report": _fra_report,
    "risk-rating": _risk_rating,
    "action-plan": _action_plan,
}


def visible_sections(data: FRAReportData) -> List[FRASection]:
    return [
        section
        for section in FRA_SECTIONS
        if section.id != "sprinkler" or data.has_sprinklers
    ]


def build_sections(data: FRAReportData) -> List[RenderedSection]:
    """Every visible section with its content blocks, in document order."""
    return [
        RenderedSection(section, SECTION_BUILDERS[section.id](data))
        for section in visible_sections(data)
    ]
