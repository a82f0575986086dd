# Logical prompt texts. Channel rendering and translation happen outside this service.

IDENTIFIER_PROMPT = "Welcome to the municipal hazard reporting bot. Please enter your ID number."
CATEGORY_PROMPT = "What kind of hazard are you reporting?"
DESCRIPTION_PROMPT = "Please describe the hazard."

INVALID_IDENTIFIER = "Invalid ID number."
UNKNOWN_CATEGORY = "Please choose one of the listed hazard types."
EMPTY_DESCRIPTION = "Please describe the hazard."

CASE_REFERENCE_TEXT = "Case reference {case_reference}"
THANK_YOU_TEXT = "Thank you for contacting the municipal hotline."

# Presentation order of the choice list
DEFAULT_CATEGORIES = (
    "Green garbage bin full",
    "Street light not working",
    "Fire hydrant dripping",
    "Public garden dirty",
    "Green garbage bin out of place",
    "Dog waste on the street",
    "Bollard not working",
    "Mosquitoes",
)


def hazard_categories(raw: str = ""):
    """
    Category labels in presentation order.
    `raw` is the HAZARD_CATEGORIES setting ("|"-separated); blank entries are
    dropped and an empty override falls back to DEFAULT_CATEGORIES.
    """
    labels = [x.strip() for x in (raw or "").split("|") if x.strip()]
    return tuple(labels) if labels else DEFAULT_CATEGORIES
