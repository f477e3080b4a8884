BASIC_NAMES_CANNOT_BE_EMPTY = 'A concept must have at least one name'
BASIC_NAME_CANNOT_BE_EMPTY = 'Concept name cannot be empty'
BASIC_DESCRIPTION_CANNOT_BE_EMPTY = 'Concept description cannot be empty'
BASIC_INVALID_NAME_LOCALE = 'Invalid name locale'
BASIC_INVALID_DESCRIPTION_LOCALE = 'Invalid description locale'
BASIC_CONCEPT_CLASS_CANNOT_BE_EMPTY = 'Concept class cannot be empty'

TAG_UNKNOWN = 'Unknown concept name tag'
TAG_HELD_BY_MORE_THAN_ONE_NAME = 'A preferred or short designation may only be held by one name'

NUMERIC_DETAILS_ONLY_FOR_NUMERIC_CONCEPTS = 'Only numeric concepts can have numeric details'
NUMERIC_RANGES_OUT_OF_ORDER = 'Numeric ranges must satisfy low absolute <= low critical <= low normal <= hi normal <= hi critical <= hi absolute'

CONCEPT_ALREADY_RETIRED = 'Concept is already retired'
CONCEPT_NOT_RETIRED = 'Concept is already not retired'
CONCEPT_RETIRED = 'Concept was retired'
