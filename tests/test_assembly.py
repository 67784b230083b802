"""
Tests for the assembly of the normal equations.
"""

import os
import threading
from concurrent.futures import ThreadPoolExecutor
import numpy as np
import pytest
from waveinv import NormalEquationAssembler
from waveinv.exceptions import InputInconsistency
from waveinv.inversion import WeightAssigner
from waveinv.inversion import WeightingConfig
from waveinv.inversion import read_unknowns
from waveinv.utils import read_dinfo, read_matrix, read_vector


@pytest.fixture
def neq(two_windows, random_partials, unknowns):
    return NormalEquationAssembler(two_windows, random_partials, unknowns,
                                   n_cpus=2, verbose=False)


class TestAssembly:

    def test_normal_equations(self, neq):
        assert neq.a.shape == (20, 3)
        np.testing.assert_allclose(neq.ata, neq.a.T @ neq.a)
        np.testing.assert_allclose(neq.atd, neq.a.T @ neq.d)

    def test_data_information(self, neq):
        obs = np.r_[np.arange(1, 11), -np.arange(1, 11)]
        np.testing.assert_allclose(neq.d, obs - 0.5)
        np.testing.assert_allclose(neq.obs, obs)
        assert neq.num_independent == pytest.approx(2.)
        assert neq.d_norm == pytest.approx(np.linalg.norm(obs - 0.5))
        assert neq.obs_norm == pytest.approx(np.linalg.norm(obs))
        assert neq.normalized_variance == pytest.approx(
            np.sum((obs - 0.5)**2) / np.sum(obs**2))

    @pytest.mark.parametrize('weighting', [
        {'amplitude_reciprocal': True},
        WeightingConfig(amplitude_reciprocal=True),
        WeightAssigner(amplitude_reciprocal=True),
    ])
    def test_weighting(self, two_windows, random_partials, unknowns, neq,
                       weighting):
        weighted = NormalEquationAssembler(two_windows, random_partials,
                                           unknowns, weighting=weighting,
                                           n_cpus=1, verbose=False)
        np.testing.assert_allclose(weighted.d, 0.1 * neq.d)
        np.testing.assert_allclose(weighted.a, 0.1 * neq.a)
        np.testing.assert_allclose(weighted.ata, 0.01 * neq.ata)
        # weighting cancels out in the normalized variance
        assert weighted.normalized_variance == pytest.approx(neq.normalized_variance)

    def test_unsupported_weighting(self, two_windows, random_partials, unknowns):
        with pytest.raises(TypeError):
            NormalEquationAssembler(two_windows, random_partials, unknowns,
                                    weighting='amplitude', verbose=False)

    def test_str(self, neq):
        assert 'Number of unknowns : 3' in str(neq)


class TestPrecomputedAtA:

    def test_reuse(self, two_windows, random_partials, unknowns):
        ata = np.eye(3)
        neq = NormalEquationAssembler(two_windows, random_partials, unknowns,
                                      ata=ata, verbose=False)
        np.testing.assert_array_equal(neq.ata, ata)

    @pytest.mark.parametrize('shape', [(2, 2), (3, 4), (3,)])
    def test_invalid_shape(self, two_windows, random_partials, unknowns, shape):
        with pytest.raises(InputInconsistency):
            NormalEquationAssembler(two_windows, random_partials, unknowns,
                                    ata=np.zeros(shape), verbose=False)


class TestLazyProducts:

    def test_computed_once(self, neq, monkeypatch):
        calls = []
        compute_ata = neq.engine.compute_ata
        barrier = threading.Barrier(8)

        def counting(a):
            calls.append(1)
            return compute_ata(a)

        def access():
            barrier.wait()
            return neq.ata

        monkeypatch.setattr(neq.engine, 'compute_ata', counting)
        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(lambda _: access(), range(8)))
        assert len(calls) == 1
        assert all(result is results[0] for result in results)
        assert neq.atd is neq.atd


class TestPersistence:

    def test_write(self, neq, unknowns, tmp_path):
        outdir = str(tmp_path / 'inversion')
        neq.write(outdir)
        assert sorted(os.listdir(outdir)) == ['ata.lst', 'atd.lst',
                                              'dInfo.inf', 'unknowns.lst']
        np.testing.assert_array_equal(read_matrix(os.path.join(outdir, 'ata.lst')),
                                      neq.ata)
        np.testing.assert_array_equal(read_vector(os.path.join(outdir, 'atd.lst')),
                                      neq.atd)
        assert read_dinfo(os.path.join(outdir, 'dInfo.inf')) == (
            neq.num_independent, neq.d_norm, neq.obs_norm)
        parameters = read_unknowns(os.path.join(outdir, 'unknowns.lst'))
        assert parameters == unknowns
        assert [p.scale for p in parameters] == [p.scale for p in unknowns]

    def test_save_load(self, neq, tmp_path):
        path = str(tmp_path / 'pickles' / 'neq.pickle')
        ata = neq.ata
        neq.save(path)
        loaded = NormalEquationAssembler.load(path)
        np.testing.assert_array_equal(loaded.ata, ata)
        np.testing.assert_array_equal(loaded.atd, neq.atd)
        assert loaded.dvector.n_timewindow == 2
        # the lock is recreated
        assert loaded._lock.acquire(blocking=False)
        loaded._lock.release()
