"""Tests for conjoint simulation and AMCE estimation."""

import pandas as pd
import pytest

from statnotes.conjoint import (
    CANDIDATE_ATTRIBUTES,
    estimate_amce,
    simulate_conjoint,
    true_amce,
)


@pytest.fixture(scope="module")
def conjoint_data() -> pd.DataFrame:
    return simulate_conjoint(n_respondents=1000, n_tasks=5, rng=41)


def test_simulated_layout(conjoint_data):
    assert len(conjoint_data) == 1000 * 5 * 2
    for name, levels in CANDIDATE_ATTRIBUTES.items():
        assert set(conjoint_data[name].unique()) <= set(levels)
    assert {"respondent", "task", "profile", "utility", "chosen"} <= set(conjoint_data.columns)


def test_exactly_one_choice_per_task(conjoint_data):
    chosen = conjoint_data.groupby(["respondent", "task"])["chosen"].sum()
    assert (chosen == 1).all()


def test_noiseless_choice_follows_utility():
    df = simulate_conjoint(n_respondents=50, n_tasks=3, noise=0.0, rng=42)
    best = df.groupby(["respondent", "task"])["utility"].transform("max")
    assert (df.loc[df["chosen"] == 1, "utility"] == best[df["chosen"] == 1]).all()


def test_profiles_per_task_validation():
    with pytest.raises(ValueError):
        simulate_conjoint(n_respondents=5, profiles_per_task=1)


def test_amce_table_layout(conjoint_data):
    amce = estimate_amce(conjoint_data)
    n_levels = sum(len(levels) for levels in CANDIDATE_ATTRIBUTES.values())
    assert len(amce) == n_levels
    assert list(amce.columns) == [
        "attribute", "level", "estimate", "se", "ci_lower", "ci_upper", "p_value", "baseline",
    ]
    baselines = amce[amce["baseline"]]
    assert baselines["level"].tolist() == [levels[0] for levels in CANDIDATE_ATTRIBUTES.values()]
    assert (baselines["estimate"] == 0).all()


def test_amce_signs_follow_true_effects(conjoint_data):
    amce = estimate_amce(conjoint_data).set_index(["attribute", "level"])
    assert amce.loc[("experience", "Governor"), "estimate"] > 0
    assert amce.loc[("experience", "Governor"), "p_value"] < 0.01
    assert amce.loc[("age", "65"), "estimate"] < 0
    assert (
        amce.loc[("experience", "Governor"), "estimate"]
        > amce.loc[("experience", "City council"), "estimate"]
    )


def test_amce_tracks_true_utility_shifts(conjoint_data):
    amce = estimate_amce(conjoint_data)
    merged = true_amce().merge(amce, on=["attribute", "level"])
    assert merged["utility_shift"].corr(merged["estimate"]) > 0.9


def test_amce_without_level_mapping(conjoint_data):
    amce = estimate_amce(conjoint_data, attributes=["gender", "policy"])
    # Alphabetical baselines when levels are not given
    base = amce[amce["baseline"]].set_index("attribute")["level"]
    assert base["gender"] == "Female"
    assert base["policy"] == "Conservative"


def test_amce_hc1_without_respondent_column(conjoint_data):
    clustered = estimate_amce(conjoint_data, attributes={"gender": ["Male", "Female"]})
    robust = estimate_amce(conjoint_data, attributes={"gender": ["Male", "Female"]}, respondent=None)
    assert clustered["estimate"].tolist() == pytest.approx(robust["estimate"].tolist())


def test_single_level_attribute_is_not_identified():
    df = simulate_conjoint({"party": ["A"], "gender": ["M", "F"]}, n_respondents=20, rng=43)
    with pytest.raises(ValueError, match="single observed level"):
        estimate_amce(df, attributes={"party": ["A"], "gender": ["M", "F"]})


def test_true_amce_long_form():
    truth = true_amce()
    assert list(truth.columns) == ["attribute", "level", "utility_shift"]
    assert len(truth) == sum(len(v) for v in CANDIDATE_ATTRIBUTES.values())
    assert truth.loc[truth["level"] == "Male", "utility_shift"].iloc[0] == 0.0
