from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .core import Sample, TimeStampedModel


SCORE_VALIDATORS = [MinValueValidator(1), MaxValueValidator(10)]


class LabResults(TimeStampedModel):
    """
    Physico-chemical indicators measured while the sample is in Lab.
    """

    INDICATOR_FIELDS = (
        "bulk_density_g_dm3",
        "appearance",
        "color",
        "smell",
        "taste",
        "chlorides_pct",
        "phosphates_pct",
        "moisture_pct",
        "ph_value",
        "hydration",
        "gel_strength_g_cm3",
        "viscosity_cps",
        "colority",
        "additional_info",
    )

    sample = models.OneToOneField(
        Sample,
        on_delete=models.CASCADE,
        related_name="lab_results",
    )

    bulk_density_g_dm3 = models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True)
    appearance = models.CharField(max_length=255, blank=True)
    color = models.CharField(max_length=255, blank=True)
    smell = models.CharField(max_length=255, blank=True)
    taste = models.CharField(max_length=255, blank=True)
    chlorides_pct = models.DecimalField(max_digits=7, decimal_places=3, null=True, blank=True)
    phosphates_pct = models.DecimalField(max_digits=7, decimal_places=3, null=True, blank=True)
    moisture_pct = models.DecimalField(max_digits=7, decimal_places=3, null=True, blank=True)
    ph_value = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    hydration = models.CharField(max_length=64, blank=True)
    gel_strength_g_cm3 = models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True)
    viscosity_cps = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    colority = models.CharField(max_length=255, blank=True)
    additional_info = models.TextField(blank=True)

    def has_any_indicator(self) -> bool:
        for field in self.INDICATOR_FIELDS:
            value = getattr(self, field)
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            return True
        return False

    def __str__(self):
        return f"Lab results {self.sample.sample_code}"


class PilotResults(TimeStampedModel):
    """
    Tasting sheet of the pilot batch. Scores are 1..10.
    """

    SCORE_FIELDS = (
        "score_appearance",
        "score_color",
        "score_aroma",
        "score_taste",
        "score_consistency",
        "score_juiciness",
        "score_break_moisture",
        "score_syneresis",
        "score_curl_formation",
        "score_cut_pattern",
        "score_fibers",
        "score_structure_density",
        "score_air_inclusions",
        "score_overall",
    )

    sample = models.OneToOneField(
        Sample,
        on_delete=models.CASCADE,
        related_name="pilot_results",
    )

    tasting_sheet_no = models.CharField(max_length=32, blank=True)
    tasting_date = models.DateField(null=True, blank=True)
    direction = models.CharField(max_length=64, blank=True)
    tasting_goal = models.TextField(blank=True)

    score_appearance = models.PositiveSmallIntegerField(null=True, blank=True, validators=SCORE_VALIDATORS)
    score_color = models.PositiveSmallIntegerField(null=True, blank=True, validators=SCORE_VALIDATORS)
    score_aroma = models.PositiveSmallIntegerField(null=True, blank=True, validators=SCORE_VALIDATORS)
    score_taste = models.PositiveSmallIntegerField(null=True, blank=True, validators=SCORE_VALIDATORS)
    score_consistency = models.PositiveSmallIntegerField(null=True, blank=True, validators=SCORE_VALIDATORS)
    score_juiciness = models.PositiveSmallIntegerField(null=True, blank=True, validators=SCORE_VALIDATORS)
    score_break_moisture = models.PositiveSmallIntegerField(null=True, blank=True, validators=SCORE_VALIDATORS)
    score_syneresis = models.PositiveSmallIntegerField(null=True, blank=True, validators=SCORE_VALIDATORS)
    score_curl_formation = models.PositiveSmallIntegerField(null=True, blank=True, validators=SCORE_VALIDATORS)
    score_cut_pattern = models.PositiveSmallIntegerField(null=True, blank=True, validators=SCORE_VALIDATORS)
    score_fibers = models.PositiveSmallIntegerField(null=True, blank=True, validators=SCORE_VALIDATORS)
    score_structure_density = models.PositiveSmallIntegerField(null=True, blank=True, validators=SCORE_VALIDATORS)
    score_air_inclusions = models.PositiveSmallIntegerField(null=True, blank=True, validators=SCORE_VALIDATORS)
    score_overall = models.PositiveSmallIntegerField(null=True, blank=True, validators=SCORE_VALIDATORS)

    comment = models.TextField(blank=True)

    def has_valid_overall_score(self) -> bool:
        return self.score_overall is not None and 1 <= self.score_overall <= 10

    def __str__(self):
        return f"Pilot results {self.sample.sample_code}"
