"""Tests for the offline trajectory replay CLI."""
import textwrap

from arm_controller.app.trajectory_replay import _main, load_trajectory

JOINTS = ['joint1', 'joint2', 'joint3', 'joint4', 'joint5', 'joint6']


def _write_trajectory(tmp_path, joint_names, points):
    lines = ['trajectory:', f'  joint_names: [{", ".join(joint_names)}]', '  points:']
    for t, positions in points:
        lines.append(f'    - positions: [{", ".join(str(p) for p in positions)}]')
        lines.append(f'      time_from_start: {{sec: {int(t)}, nanosec: {int(round((t - int(t)) * 1e9))}}}')
    path = tmp_path / 'trajectory.yaml'
    path.write_text('\n'.join(lines) + '\n')
    return str(path)


def test_load_trajectory_with_duration_mapping(tmp_path):
    path = _write_trajectory(tmp_path, JOINTS, [(0.0, [0.0] * 6), (1.5, [0.1] * 6)])

    trajectory = load_trajectory(path)

    assert trajectory.joint_names == JOINTS
    assert [p.time_from_start for p in trajectory.points] == [0.0, 1.5]


def test_replay_succeeds(tmp_path, capsys):
    """Test a short trajectory replays to success."""
    path = _write_trajectory(tmp_path, JOINTS, [(0.0, [0.0] * 6), (0.1, [0.2, 0.3, 0.4, 0.1, 0.1, 0.1])])

    assert _main([path, '--robot-description', 'robot_description.yaml']) == 0
    assert 'succeeded' in capsys.readouterr().out


def test_replay_with_rate_override(tmp_path):
    path = _write_trajectory(tmp_path, JOINTS, [(0.0, [0.0] * 6), (1.0, [0.2] * 6)])

    assert _main([path, '--rate', '4', '--summary']) == 0


def test_replay_fails_on_joint_mismatch(tmp_path, capsys):
    """Test replay exits non-zero when the goal is aborted."""
    path = _write_trajectory(tmp_path, ['joint1', 'joint2'], [(0.0, [0.1, 0.1])])

    assert _main([path]) == 1
    assert 'aborted' in capsys.readouterr().out


def test_replay_fails_when_goal_does_not_finish(tmp_path):
    path = _write_trajectory(tmp_path, JOINTS, [(0.0, [0.0] * 6), (10.0, [0.2] * 6)])

    assert _main([path, '--max-ticks', '3']) == 1


def test_replay_fails_with_two_managers(tmp_path):
    """Test replay exits non-zero when startup fails."""
    description = tmp_path / 'robot.yaml'
    description.write_text(textwrap.dedent("""
        robot:
          name: twin
          controller_managers: [left, right]
        joints:
          j0: {}
    """))
    path = _write_trajectory(tmp_path, ['j0'], [(0.0, [0.1])])

    assert _main([path, '--robot-description', str(description)]) == 1


def test_replay_fails_on_missing_file(tmp_path):
    assert _main([str(tmp_path / 'missing.yaml')]) == 1
