"""Body-mass index helpers."""

UNDERWEIGHT = "underweight"
NORMAL_WEIGHT = "normal weight"
OVERWEIGHT = "overweight"
OBESE = "obese"


def calculate_bmi(weight_kg: float | None, height_cm: float | None) -> float | None:
    """BMI rounded to two decimals, or None when weight or height is missing."""
    if not weight_kg or not height_cm:
        return None
    height_m = height_cm / 100
    return round(weight_kg / (height_m * height_m), 2)


def weight_status(bmi: float | None) -> str | None:
    """Map a BMI value to its weight band."""
    if bmi is None:
        return None
    if bmi < 18.5:
        return UNDERWEIGHT
    if bmi < 25:
        return NORMAL_WEIGHT
    if bmi < 30:
        return OVERWEIGHT
    return OBESE
