"""Inference and descriptive reporting for the attention-shift thresholds."""

from .inference import InferenceResult, run_inference, save_inference_outputs
from .mixed_model import MixedModelFit, fit_mixed_model, pairwise_tukey
from .rm_anova import RMAnovaResult, greenhouse_geisser_epsilon, run_rm_anova
from .utils import check_design

__all__ = [
    "InferenceResult",
    "run_inference",
    "save_inference_outputs",
    "MixedModelFit",
    "fit_mixed_model",
    "pairwise_tukey",
    "RMAnovaResult",
    "greenhouse_geisser_epsilon",
    "run_rm_anova",
    "check_design",
]
