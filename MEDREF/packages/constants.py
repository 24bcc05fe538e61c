from __future__ import annotations

from os.path import abspath, join

# [PATHS]
###############################################################################
ROOT_DIR = abspath(join(__file__, "../../.."))
PROJECT_DIR = join(ROOT_DIR, "MEDREF")
SETTING_PATH = join(PROJECT_DIR, "setup", "settings")
RSC_PATH = join(PROJECT_DIR, "resources")
LOGS_PATH = join(RSC_PATH, "logs")
LOG_FILENAME = "medref.log"

###############################################################################
CONFIGURATION_FILE = join(SETTING_PATH, "configurations.json")

# [CORPUS KINDS]
###############################################################################
MEDICATION = "medication"
FIRST_NAME = "first_name"
LAST_NAME = "last_name"
CORPUS_KINDS = (MEDICATION, FIRST_NAME, LAST_NAME)

# [RESPONSE SHAPES]
###############################################################################
STRUCTURED_LIST = "structured-list"
DELIMITED_TEXT = "delimited-text"

# [REMOTE SOURCES]
###############################################################################
# Ordered by expected corpus size, largest first
MEDICATION_SOURCES = [
    {
        "url": "https://rxnav.nlm.nih.gov/REST/allconcepts.json?tty=SCD+SBD+GPCK+BPCK",
        "shape": STRUCTURED_LIST,
        "record_path": ["minConceptGroup", "minConcept"],
        "fields": ["name"],
    },
    {
        "url": "https://raw.githubusercontent.com/nasrulhazim/medication-list/master/medications.txt",
        "shape": DELIMITED_TEXT,
    },
    {
        "url": "https://raw.githubusercontent.com/ranaroussi/pynyse/master/data/drugs.txt",
        "shape": DELIMITED_TEXT,
    },
    {
        "url": (
            "https://gist.githubusercontent.com/cferdinandi/6269818b7525e77c4211c5af140c1895"
            "/raw/68c8e8e6e3b0dde6c0e6f07c3bf60aee8c94e8d6/drugs.txt"
        ),
        "shape": DELIMITED_TEXT,
    },
    {
        "url": "https://raw.githubusercontent.com/dhimmel/drugbank/gh-pages/data/drugbank.tsv",
        "shape": DELIMITED_TEXT,
    },
    {
        "url": "https://raw.githubusercontent.com/First-Derivative/fda/master/drugs.csv",
        "shape": DELIMITED_TEXT,
    },
    {
        "url": "https://api.fda.gov/drug/label.json?search=openfda.brand_name:*&limit=1000",
        "shape": STRUCTURED_LIST,
        "record_path": ["results"],
        "fields": [
            "openfda.brand_name",
            "openfda.generic_name",
            "openfda.substance_name",
        ],
    },
]
FIRST_NAME_SOURCES = [
    {
        "url": (
            "https://gist.githubusercontent.com/elifiner/47631bb8875a664e0363f35e2eba65e4"
            "/raw/d75de2b321e5c7a33a97c1e2cce134c0f57c8a5e/firstnames.txt"
        ),
        "shape": DELIMITED_TEXT,
    },
    {
        "url": "https://raw.githubusercontent.com/dominictarr/random-name/master/first-names.txt",
        "shape": DELIMITED_TEXT,
    },
]
LAST_NAME_SOURCES = [
    {
        "url": "https://raw.githubusercontent.com/dominictarr/random-name/master/names.txt",
        "shape": DELIMITED_TEXT,
    },
    {
        "url": (
            "https://gist.githubusercontent.com/subodhghulaxe/8148971/raw"
            "/f8bf7ae572e023ab2d8a8f9e37bd25f9ed3c1a3c/surnames.txt"
        ),
        "shape": DELIMITED_TEXT,
    },
]
DEFAULT_SOURCES: dict[str, list[dict[str, object]]] = {
    MEDICATION: MEDICATION_SOURCES,
    FIRST_NAME: FIRST_NAME_SOURCES,
    LAST_NAME: LAST_NAME_SOURCES,
}

DEFAULT_HTTP_HEADERS = {
    "User-Agent": "MedrefReferenceMatcher/1.0 (contact=reference-data@medref.local)",
    "Accept": "application/json, text/plain, text/csv, */*",
}

# [TEXT HEADERS]
###############################################################################
TEXT_HEADER_MARKERS = ("drug_id",)
TEXT_HEADER_PREFIXES = ("name\t",)

# [MATCHING VOCABULARY]
###############################################################################
# Short personal names that collide with medication prefixes
COMMON_NAME_BLOCKLIST = (
    "CADE",
    "JOHN",
    "JANE",
    "MARY",
    "JOSE",
    "JUAN",
    "MIKE",
    "DAVE",
    "SARA",
    "ANNA",
)

MEDICATION_FORMS = frozenset(
    {
        "TABLET",
        "TABLETS",
        "CAPSULE",
        "CAPSULES",
        "PILL",
        "PILLS",
        "SOLUTION",
        "SUSPENSION",
        "SYRUP",
        "LIQUID",
        "ELIXIR",
        "CREAM",
        "OINTMENT",
        "GEL",
        "LOTION",
        "PATCH",
        "INHALER",
        "SPRAY",
        "DROP",
        "DROPS",
        "INJECTION",
    }
)

STRENGTH_UNITS = frozenset({"MG", "MCG", "G", "ML", "UNITS", "MEQ", "IU", "%"})
