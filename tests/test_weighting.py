"""
Tests for the weighting of the time windows.
"""

import numpy as np
import pytest
from waveinv.exceptions import InputInconsistency
from waveinv.exceptions import MissingData
from waveinv.inversion import DataVectorAssembler
from waveinv.inversion import IDENTITY
from waveinv.inversion import WeightAssigner
from waveinv.inversion import WeightingConfig
from waveinv.inversion import phase_families

from conftest import make_pair


def build(*pairs):
    records = [record for pair in pairs for record in pair]
    return DataVectorAssembler(records, verbose=False)


class TestPhaseFamilies:

    @pytest.mark.parametrize('phases, component, expected', [
        (['P'], 'Z', {'PSV'}),
        (['PcP'], 'R', {'PSV'}),
        (['SKS'], 'R', {'PSV'}),
        (['S'], 'T', {'SH'}),
        (['ScS'], 'T', {'SH'}),
        (['S'], 'Z', {'PSV'}),
        (['S', 'P'], 'T', {'SH', 'PSV'}),
        (['Love'], 'T', set()),
    ])
    def test_classification(self, phases, component, expected):
        assert phase_families(phases, component) == expected


class TestWeightAssigner:

    def test_identity(self, two_windows):
        dvector = DataVectorAssembler(two_windows, verbose=False)
        np.testing.assert_array_equal(IDENTITY.factors(dvector), [1., 1.])
        weights = IDENTITY.weigh(dvector)
        assert [w.size for w in weights] == [10, 10]
        np.testing.assert_array_equal(dvector.build_weighted_d(weights),
                                      dvector.build_weighted_d())

    def test_amplitude_reciprocal(self):
        dvector = build(make_pair('EV1', 'STA1', obs=np.arange(1, 11)),
                        make_pair('EV2', 'STA2', obs=-4 * np.ones(10)))
        factors = WeightAssigner(amplitude_reciprocal=True).factors(dvector)
        np.testing.assert_allclose(factors, [0.1, 0.25])

    def test_component_factors(self):
        dvector = build(make_pair('EV1', 'STA1', 'Z'),
                        make_pair('EV1', 'STA1', 'R'),
                        make_pair('EV1', 'STA1', 'T'))
        assigner = WeightAssigner(factor_z=2., factor_r=3., factor_t=0.5)
        np.testing.assert_allclose(assigner.factors(dvector), [2., 3., 0.5])

    def test_balance_component(self):
        dvector = build(make_pair('EV1', 'STA1', 'Z'),
                        make_pair('EV2', 'STA1', 'Z'),
                        make_pair('EV1', 'STA1', 'T'))
        factors = WeightAssigner(balance_component=True,
                                 factor_z=2.).factors(dvector)
        np.testing.assert_allclose(factors, [2 / np.sqrt(2 / 3),
                                             2 / np.sqrt(2 / 3),
                                             1 / np.sqrt(1 / 3)])

    def test_balance_phase(self):
        dvector = build(make_pair('EV1', 'STA1', 'Z', phases='P'),
                        make_pair('EV1', 'STA1', 'T', phases='S'),
                        make_pair('EV2', 'STA1', 'T', phases='S'),
                        make_pair('EV3', 'STA1', 'T', phases='Love'))
        factors = WeightAssigner(balance_phase=True).factors(dvector)
        # three classified windows: one PSV, two SH
        np.testing.assert_allclose(factors, [1 / np.sqrt(1 / 3),
                                             1 / np.sqrt(2 / 3),
                                             1 / np.sqrt(2 / 3),
                                             1.])

    def test_balance_phase_both_families(self):
        dvector = build(make_pair('EV1', 'STA1', 'T', phases='S,P'),
                        make_pair('EV2', 'STA1', 'T', phases='S'))
        factors = WeightAssigner(balance_phase=True).factors(dvector)
        # SH: 2 of 2, PSV: 1 of 2
        np.testing.assert_allclose(factors, [1 / np.sqrt(0.5), 1.])

    def test_balance_geometry(self):
        close = dict(event_position=(0., 0.), station_position=(30., 30.))
        dvector = build(make_pair('EV1', 'STA1', **close),
                        make_pair('EV2', 'STA1', event_position=(1., 1.),
                                  station_position=(30., 31.)),
                        make_pair('EV3', 'STA1', **close),
                        make_pair('EV4', 'STA1', event_position=(40., 40.),
                                  station_position=(30., 30.)),
                        make_pair('EV1', 'STA1', 'Z', **close))
        factors = WeightAssigner(balance_geometry=True).factors(dvector)
        np.testing.assert_allclose(factors, [1 / np.sqrt(3)] * 3 + [1., 1.])

    def test_balance_geometry_needs_positions(self, two_windows):
        dvector = DataVectorAssembler(two_windows, verbose=False)
        with pytest.raises(InputInconsistency):
            WeightAssigner(balance_geometry=True).factors(dvector)

    def test_entry_weights(self, two_windows):
        dvector = DataVectorAssembler(two_windows, verbose=False)
        entry_weights = {('EV1', 'STA1', 'T'): 4., ('EV2', 'STA2', 'T'): 9.}
        assigner = WeightAssigner(entry_weights=[entry_weights, entry_weights])
        np.testing.assert_allclose(assigner.factors(dvector), [4., 9.])

    def test_entry_weights_missing(self, two_windows):
        dvector = DataVectorAssembler(two_windows, verbose=False)
        assigner = WeightAssigner(entry_weights=[{('EV1', 'STA1', 'T'): 4.}])
        with pytest.raises(MissingData):
            assigner.factors(dvector)

    def test_options_combine(self, two_windows):
        dvector = DataVectorAssembler(two_windows, verbose=False)
        assigner = WeightAssigner(amplitude_reciprocal=True, factor_t=2.,
                                  entry_weights=[{('EV1', 'STA1', 'T'): 4.,
                                                  ('EV2', 'STA2', 'T'): 1.}])
        np.testing.assert_allclose(assigner.factors(dvector), [0.4, 0.2])

    def test_config_or_kwargs(self):
        config = WeightingConfig(balance_phase=True)
        assert WeightAssigner(config).config is config
        with pytest.raises(ValueError):
            WeightAssigner(config, balance_phase=False)


class TestWeightingConfig:

    def test_from_dict(self):
        config = WeightingConfig.from_dict({'amplitude_reciprocal': True,
                                            'factor_r': 0.5})
        assert config.amplitude_reciprocal
        assert config.component_factor('R') == 0.5
        assert config.component_factor('Z') == 1.

    def test_from_dict_unknown_option(self):
        with pytest.raises(ValueError, match='balance_station'):
            WeightingConfig.from_dict({'balance_station': True})

    def test_str(self):
        assert 'Balance geometry : True' in str(WeightingConfig(balance_geometry=True))
