"""Допустимые значения анкетных полей, категорий площадок и причин жалоб."""

GENDERS = ("male", "female", "non-binary", "other")

ETHNICITIES = (
    "asian", "black", "hispanic", "white", "middle_eastern",
    "native_american", "pacific_islander", "mixed", "other",
)

RELIGIONS = (
    "agnostic", "atheist", "buddhist", "catholic", "christian", "hindu",
    "jewish", "muslim", "spiritual", "other", "prefer_not_to_say",
)

OFFSPRING = (
    "has_kids_wants_more", "has_kids_doesnt_want_more", "no_kids_wants_kids",
    "no_kids_doesnt_want_kids", "not_sure",
)

# Курение, алкоголь и прочее используют одну шкалу частоты
FREQUENCIES = ("never", "rarely", "sometimes", "often", "daily")

DIETS = ("omnivore", "vegetarian", "vegan", "pescatarian", "keto", "halal", "kosher", "other")

INCOMES = (
    "under_25k", "25k_50k", "50k_75k", "75k_100k", "100k_150k",
    "150k_200k", "over_200k", "prefer_not_to_say",
)

VENUE_CATEGORIES = (
    "indian", "thai", "french", "korean", "japanese", "italian", "mexican",
    "american", "chinese", "mediterranean", "vietnamese", "bar", "coffee",
    "activity", "outdoor", "entertainment",
)

REPORT_REASONS = (
    "fake_profile", "inappropriate_content", "harassment", "spam", "underage", "other",
)

AGE_RANGE = (18, 99)
HEIGHT_RANGE_CM = (120, 230)

# Поле deal_breakers → (поле профиля, допустимые значения)
ALLOW_LISTS = {
    "acceptable_ethnicities": ("ethnicity", ETHNICITIES),
    "acceptable_religions": ("religion", RELIGIONS),
    "acceptable_offspring": ("offspring", OFFSPRING),
    "acceptable_smoker": ("smoker", FREQUENCIES),
    "acceptable_alcohol": ("alcohol", FREQUENCIES),
    "acceptable_drugs": ("drugs", FREQUENCIES),
    "acceptable_diets": ("diet", DIETS),
    "acceptable_income": ("income", INCOMES),
}
