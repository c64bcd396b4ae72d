"""Built-in starter deck. It is protected so a learner always has something to study."""

DEFAULT_DECK_ID = "default-gre"
DEFAULT_DECK_NAME = "GRE High-Frequency"
DEFAULT_DECK_DESCRIPTION = "Essential GRE vocabulary words"

# (term, part of speech, definition, example, synonyms)
DEFAULT_WORDS = [
    ("Ephemeral", "adjective", "Lasting for a very short time; transitory",
     "The ephemeral beauty of cherry blossoms makes them all the more precious.",
     ("fleeting", "transient", "momentary", "brief")),
    ("Sycophant", "noun", "A person who acts obsequiously toward someone important to gain advantage",
     "The CEO surrounded himself with sycophants who never challenged his decisions.",
     ("flatterer", "toady", "bootlicker", "yes-man")),
    ("Ubiquitous", "adjective", "Present, appearing, or found everywhere",
     "Smartphones have become ubiquitous in modern society.",
     ("omnipresent", "pervasive", "universal", "everywhere")),
    ("Taciturn", "adjective", "Reserved or uncommunicative in speech; saying little",
     "The taciturn old man rarely spoke more than a few words at a time.",
     ("reticent", "reserved", "silent", "uncommunicative")),
    ("Mendacious", "adjective", "Not telling the truth; lying",
     "The politician's mendacious statements were quickly fact-checked by journalists.",
     ("untruthful", "deceitful", "dishonest", "lying")),
    ("Languid", "adjective",
     "Displaying or having a disinclination for physical exertion or effort; slow and relaxed",
     "She spent a languid afternoon reading by the pool.",
     ("leisurely", "unhurried", "relaxed", "slow")),
    ("Gregarious", "adjective", "Fond of company; sociable",
     "His gregarious personality made him the life of every party.",
     ("sociable", "outgoing", "friendly", "convivial")),
    ("Fastidious", "adjective", "Very attentive to and concerned about accuracy and detail",
     "The fastidious editor caught every grammatical error in the manuscript.",
     ("meticulous", "particular", "finicky", "scrupulous")),
    ("Enervate", "verb", "To cause someone to feel drained of energy or vitality",
     "The long hike in the heat enervated even the most experienced climbers.",
     ("exhaust", "tire", "fatigue", "weaken")),
    ("Capricious", "adjective", "Given to sudden and unaccountable changes of mood or behavior",
     "The capricious weather made it difficult to plan outdoor activities.",
     ("fickle", "unpredictable", "changeable", "volatile")),
    ("Ameliorate", "verb", "To make something bad or unsatisfactory better",
     "The new policies were designed to ameliorate working conditions.",
     ("improve", "better", "enhance", "alleviate")),
    ("Perfunctory", "adjective", "Carried out with a minimum of effort or reflection",
     "He gave the report a perfunctory glance before signing off on it.",
     ("cursory", "superficial", "hasty", "token")),
]
