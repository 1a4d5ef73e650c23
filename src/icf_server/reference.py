"""
Static ICF reference data: the four top-level categories, the qualifier
scale and the overview/help texts. None of this is fetched from the API.
"""

from dataclasses import dataclass

ICF_DOCUMENTATION_URL = (
    "https://www.who.int/standards/classifications/"
    "international-classification-of-functioning-disability-and-health"
)


@dataclass(frozen=True)
class CategoryDescriptor:
    """One of the four top-level ICF components"""
    letter: str
    name: str
    description: str


@dataclass(frozen=True)
class QualifierDescriptor:
    """A generic ICF qualifier value"""
    value: int
    level: str
    percentage: str
    description: str


CATEGORIES: dict[str, CategoryDescriptor] = {
    "b": CategoryDescriptor(
        "b",
        "Body Functions",
        "Body Functions are the physiological functions of body systems "
        "(including psychological functions). Codes range from b1 to b8.",
    ),
    "s": CategoryDescriptor(
        "s",
        "Body Structures",
        "Body Structures are anatomical parts of the body such as organs, "
        "limbs and their components. Codes range from s1 to s8.",
    ),
    "d": CategoryDescriptor(
        "d",
        "Activities and Participation",
        "Activities and Participation covers the execution of tasks and "
        "involvement in life situations. Codes range from d1 to d9.",
    ),
    "e": CategoryDescriptor(
        "e",
        "Environmental Factors",
        "Environmental Factors make up the physical, social and attitudinal "
        "environment in which people live. Codes range from e1 to e5.",
    ),
}

QUALIFIERS: dict[int, QualifierDescriptor] = {
    0: QualifierDescriptor(0, "No problem", "0-4%", "None, absent, negligible"),
    1: QualifierDescriptor(1, "Mild problem", "5-24%", "Slight, low"),
    2: QualifierDescriptor(2, "Moderate problem", "25-49%", "Medium, fair"),
    3: QualifierDescriptor(3, "Severe problem", "50-95%", "High, extreme"),
    4: QualifierDescriptor(4, "Complete problem", "96-100%", "Total"),
    8: QualifierDescriptor(
        8, "Not specified", "N/A", "Insufficient information to specify severity"
    ),
    9: QualifierDescriptor(9, "Not applicable", "N/A", "Inappropriate to apply this code"),
}

# Short labels used when listing the valid qualifier values
QUALIFIER_SHORT_LABELS = {
    0: "no problem",
    1: "mild",
    2: "moderate",
    3: "severe",
    4: "complete",
    8: "not specified",
    9: "not applicable",
}


def get_category(letter: str) -> CategoryDescriptor | None:
    """Look up a category by letter, case-insensitively"""
    return CATEGORIES.get(letter.strip().lower())


def get_qualifier(value: int) -> QualifierDescriptor | None:
    return QUALIFIERS.get(value)


OVERVIEW_TEXT = f"""**International Classification of Functioning, Disability and Health (ICF)**

The ICF is a WHO classification that provides a standard language and framework
for describing health and health-related states. It complements ICD (diagnosis
codes) by describing how conditions affect a person's functioning.

## Structure

ICF has four main components:

### 1. Body Functions (b)
Physiological functions of body systems, including psychological functions.
- b1: Mental functions (consciousness, orientation, sleep, emotion)
- b2: Sensory functions and pain
- b3: Voice and speech functions
- b4: Functions of cardiovascular, respiratory systems
- b5: Functions of digestive, metabolic, endocrine systems
- b6: Genitourinary and reproductive functions
- b7: Neuromusculoskeletal and movement functions
- b8: Functions of skin and related structures

### 2. Body Structures (s)
Anatomical parts of the body.
- s1: Structures of nervous system
- s2: Eye, ear and related structures
- s3: Structures of voice and speech
- s4: Structures of cardiovascular, respiratory systems
- s5: Structures of digestive, metabolic, endocrine systems
- s6: Structures of genitourinary and reproductive systems
- s7: Structures of movement
- s8: Skin and related structures

### 3. Activities and Participation (d)
Execution of tasks and involvement in life situations.
- d1: Learning and applying knowledge
- d2: General tasks and demands
- d3: Communication
- d4: Mobility
- d5: Self-care
- d6: Domestic life
- d7: Interpersonal interactions
- d8: Major life areas (education, work, economic)
- d9: Community, social and civic life

### 4. Environmental Factors (e)
Physical, social and attitudinal environment.
- e1: Products and technology
- e2: Natural environment
- e3: Support and relationships
- e4: Attitudes
- e5: Services, systems and policies

## Qualifiers

Severity is rated on a scale:
- 0: No problem (0-4%)
- 1: Mild problem (5-24%)
- 2: Moderate problem (25-49%)
- 3: Severe problem (50-95%)
- 4: Complete problem (96-100%)

Use {{"action": "help"}} for available actions.

## More Information

ICF official site: {ICF_DOCUMENTATION_URL}"""


HELP_TEXT = f"""# ICF Server

## Actions

**lookup** - Get full details for an ICF code
  {{"action": "lookup", "code": "b280"}}
  {{"action": "lookup", "code": "d450"}}

**search** - Find codes by keyword
  {{"action": "search", "query": "walking"}}
  {{"action": "search", "query": "pain", "max_results": 5}}

**browse** - Explore a category
  {{"action": "browse", "category": "b"}}  (Body Functions)
  {{"action": "browse", "category": "d"}}  (Activities)

**children** - Get subcodes
  {{"action": "children", "code": "d4"}}

**qualifier** - Explain severity ratings
  {{"action": "qualifier", "qualifier": 2}}

**overview** - ICF system overview
  {{"action": "overview"}}

**api** - Raw WHO API request
  {{"action": "api", "path": "/icd/release/11/2025-01/icf"}}

## ICF Code Prefixes
- **b**: Body Functions (physiological/psychological)
- **s**: Body Structures (anatomical)
- **d**: Activities & Participation (tasks/life involvement)
- **e**: Environmental Factors (physical/social/attitudinal)

## Qualifiers (severity)
0=none, 1=mild, 2=moderate, 3=severe, 4=complete, 8=not specified, 9=not applicable

## More Info
{ICF_DOCUMENTATION_URL}"""
