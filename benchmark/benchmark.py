import argparse
import time
import warnings

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from sklearn.decomposition import FastICA
from sklearn.exceptions import ConvergenceWarning

from blended_ica import ICA, error_scale_perm
from blended_ica.synthetic import tapered_random_signal


def run_blended_ica(X, A, seed, n_bins=1):
    """
    Runs the binned deblending engine on data X (shape: n_sensors x n_samples).
    Returns estimated sources, mean unmixing error and elapsed compute time.
    """
    ica = ICA(X, n_sources=A.shape[1], max_iterations=1000, tolerance=1e-6,
              n_bins=n_bins, random_state=seed)
    start = time.time()
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        result = ica.run(known_mixing=A)
    end = time.time()
    return result.sources, float(np.mean(result.unmixing_error)), end - start


def run_fastica(X, A, seed):
    """
    Runs scikit-learn's FastICA on data X (shape: n_sensors x n_samples) as a reference.
    Returns estimated sources, unmixing error and elapsed compute time.
    """
    ica = FastICA(n_components=A.shape[1], whiten="unit-variance",
                  random_state=seed, max_iter=1000, tol=1e-6)
    start = time.time()
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        # FastICA expects data shape: (n_samples, n_features)
        S_est = ica.fit_transform(X.T)
    end = time.time()
    return S_est.T, error_scale_perm(ica.components_, A), end - start


def make_mixture(rng, n_sensors, n_sources, n_samples):
    """Uniform and sparse normal sources blended by a random mixing matrix."""
    S_true = np.vstack([
        tapered_random_signal(n_samples, dist="uniform" if i % 2 == 0 else "normal",
                              sparsity=1.0 if i % 2 == 0 else 0.3, random_state=rng)
        for i in range(n_sources)
    ])
    A = rng.randn(n_sensors, n_sources)
    return A @ S_true, A


def _run_all(results, key, X, A, seed, n_bins=1):
    try:
        _, err, t = run_blended_ica(X, A, seed, n_bins=n_bins)
        results['blended_ica'][key].append((t, err))
    except Exception as e:
        print(f"blended_ica failed for {key}, seed={seed}: {e}")

    try:
        _, err, t = run_fastica(X, A, seed)
        results['sklearn_fastica'][key].append((t, err))
    except Exception as e:
        print(f"sklearn FastICA failed for {key}, seed={seed}: {e}")


def experiment_varying_sensors(sensors, n_sources, n_samples, n_runs):
    """
    Runs an experiment with varying number of sensors (constant sources and samples).
    Returns a dictionary with (compute time, unmixing error) pairs for each algorithm.
    """
    algorithms = ['blended_ica', 'sklearn_fastica']
    results = {alg: {n: [] for n in sensors} for alg in algorithms}
    for n_sensors in sensors:
        for run in range(n_runs):
            rng = np.random.RandomState(run)
            X, A = make_mixture(rng, n_sensors, n_sources, n_samples)
            _run_all(results, n_sensors, X, A, run)
    return results


def experiment_varying_samples(n_sensors, n_sources, samples_list, n_runs):
    """
    Runs an experiment with constant number of sensors and varying number of samples.
    """
    algorithms = ['blended_ica', 'sklearn_fastica']
    results = {alg: {n: [] for n in samples_list} for alg in algorithms}
    for n_samples in samples_list:
        for run in range(n_runs):
            rng = np.random.RandomState(run)
            X, A = make_mixture(rng, n_sensors, n_sources, n_samples)
            _run_all(results, n_samples, X, A, run)
    return results


def experiment_varying_bins(n_sensors, n_sources, n_samples, bins_list, n_runs):
    """
    Runs the engine alone with a growing number of bins on a stationary mixture.
    """
    results = {'blended_ica': {n: [] for n in bins_list}}
    for n_bins in bins_list:
        for run in range(n_runs):
            rng = np.random.RandomState(run)
            X, A = make_mixture(rng, n_sensors, n_sources, n_samples)
            try:
                _, err, t = run_blended_ica(X, A, run, n_bins=n_bins)
                results['blended_ica'][n_bins].append((t, err))
            except Exception as e:
                print(f"blended_ica failed for n_bins={n_bins}, run={run}: {e}")
    return results


def plot_experiment_results(x_values, results, xlabel, ylabel, title, filename,
                            xscale="linear", column=0):
    """
    Plots compute time or error (with error bars: mean ± std) vs. x_values for each algorithm.
    column selects the recorded quantity: 0 for compute time, 1 for unmixing error.
    """
    plt.figure(figsize=(10, 6))
    for alg in results:
        values = [[r[column] for r in results[alg][x]] for x in x_values]
        means = [np.mean(v) if v else np.nan for v in values]
        stds = [np.std(v) if v else np.nan for v in values]
        plt.errorbar(x_values, means, yerr=stds, capsize=5, marker='o', label=alg)
    plt.xlabel(xlabel)
    plt.ylabel(ylabel)
    plt.title(title)
    plt.legend()
    plt.grid(True)
    plt.xscale(xscale)
    plt.tight_layout()
    plt.savefig(filename)
    plt.close()
    print(f"Plot saved as '{filename}'.")


def save_results_to_csv(results, x_values, filename, x_label):
    """
    Saves the raw results to a CSV file.
    The CSV will have columns: [x_label, algorithm, run, compute_time, unmixing_error]
    """
    rows = []
    for alg in results:
        for x in x_values:
            for run, (t, err) in enumerate(results[alg][x]):
                rows.append({x_label: x, "algorithm": alg, "run": run,
                             "compute_time": t, "unmixing_error": err})
    df = pd.DataFrame(rows)
    df.to_csv(filename, index=False)
    print(f"Results saved as CSV to '{filename}'.")


def main():
    parser = argparse.ArgumentParser(
        description="Deblending experiments: varying sensors, samples and bins"
    )
    parser.add_argument('--n_runs', type=int, default=10,
                        help="Number of runs per configuration")
    parser.add_argument('--n_sources', type=int, default=2,
                        help="Number of blended sources")
    parser.add_argument('--constant_samples', type=int, default=2000,
                        help="Constant number of samples for the sensor and bin experiments")
    parser.add_argument('--constant_sensors', type=int, default=4,
                        help="Constant number of sensors for the sample and bin experiments")
    args = parser.parse_args()

    sensors_list = list(range(args.n_sources, args.n_sources + 9))
    results_sensors = experiment_varying_sensors(sensors_list, args.n_sources,
                                                 args.constant_samples, args.n_runs)
    plot_experiment_results(sensors_list, results_sensors,
                            xlabel="Number of Sensors",
                            ylabel="Compute Time (s)",
                            title="Compute Time vs. Number of Sensors",
                            filename="experiment_varying_sensors.png")
    save_results_to_csv(results_sensors, sensors_list,
                        "results_varying_sensors.csv", "n_sensors")

    samples_list = [500, 1000, 2000, 5000, 10000, 50000, 100000]
    results_samples = experiment_varying_samples(args.constant_sensors, args.n_sources,
                                                 samples_list, args.n_runs)
    plot_experiment_results(samples_list, results_samples,
                            xlabel="Number of Samples",
                            ylabel="Unmixing Error",
                            title="Unmixing Error vs. Number of Samples",
                            filename="experiment_varying_samples.png",
                            xscale="log", column=1)
    save_results_to_csv(results_samples, samples_list,
                        "results_varying_samples.csv", "n_samples")

    bins_list = [1, 2, 4, 8]
    results_bins = experiment_varying_bins(args.constant_sensors, args.n_sources,
                                           args.constant_samples, bins_list, args.n_runs)
    plot_experiment_results(bins_list, results_bins,
                            xlabel="Number of Bins",
                            ylabel="Unmixing Error",
                            title="Unmixing Error vs. Number of Bins",
                            filename="experiment_varying_bins.png",
                            column=1)
    save_results_to_csv(results_bins, bins_list,
                        "results_varying_bins.csv", "n_bins")


if __name__ == '__main__':
    main()
