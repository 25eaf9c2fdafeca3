"""Evaluation layer tests"""
import pytest

from core.actions import Action


def short_env():
    from env import make_env

    return make_env()


class TestEvalResult:
    """EvalResult tests"""

    def test_create(self):
        from evaluation import EvalResult

        result = EvalResult(
            win_rate=0.6,
            avg_reward=0.2,
            avg_length=50.0,
            games_played=100,
        )
        assert result.win_rate == 0.6
        assert result.games_played == 100
        assert result.unfinished_rate == 0.0
        assert "60.00%" in repr(result)


class TestRandomAgent:
    """RandomAgent tests"""

    def test_act(self):
        from evaluation import RandomAgent

        agent = RandomAgent(seed=0)
        legal_actions = [Action.move("W1", "1/1"), Action.move("W1", "3/1"), Action.ransom()]

        action = agent.act({}, legal_actions)
        assert action in legal_actions

    def test_empty_legal_actions(self):
        from evaluation import RandomAgent

        assert RandomAgent().act({}, []) is None

    def test_reset_replays_choices(self):
        from evaluation import RandomAgent

        agent = RandomAgent(seed=3)
        legal_actions = [Action.move("W1", r) for r in ("1/1", "3/1", "5/1", "7/1")]
        first = [agent.act({}, legal_actions) for _ in range(5)]
        agent.reset()
        assert [agent.act({}, legal_actions) for _ in range(5)] == first


class TestSearchAgent:
    """SearchAgent tests"""

    def test_name_defaults_to_level(self):
        from evaluation import SearchAgent

        assert SearchAgent("master").name == "master"
        assert SearchAgent("master", name="m1").name == "m1"

    def test_needs_state(self):
        from evaluation import SearchAgent

        with pytest.raises(ValueError):
            SearchAgent("novice").act({}, [])

    def test_act_on_state(self, make_state):
        from evaluation import SearchAgent

        state = make_state(white=["A1"], blue=["C1"], white_hand=["3/2", "1/1"])
        action = SearchAgent("expert").act({}, state.get_legal_actions(), state)
        assert action == Action.move("W1", "3/2")


class TestRunEpisode:
    """run_episode tests"""

    def test_bounded_episode(self):
        from evaluation import RandomAgent, run_episode

        env = short_env()
        agents = {"W": RandomAgent("w", seed=1), "B": RandomAgent("b", seed=2)}
        info, length, rewards = run_episode(env, agents, max_steps=40, seed=0)

        assert 0 < length <= 40
        assert set(rewards) == {"W", "B"}
        assert "error" not in info

    def test_reproducible(self):
        from evaluation import RandomAgent, run_episode

        env = short_env()
        agents = {"W": RandomAgent("w", seed=1), "B": RandomAgent("b", seed=2)}
        run_episode(env, agents, max_steps=30, seed=5)
        first = env.state.to_dict()
        run_episode(env, agents, max_steps=30, seed=5)
        assert env.state.to_dict() == first


class TestEvaluator:
    """Evaluator tests"""

    def test_evaluate(self):
        from evaluation import Evaluator, RandomAgent

        evaluator = Evaluator(env_fn=short_env, max_steps=40)
        result = evaluator.evaluate(RandomAgent("test", seed=0), n_games=4, seed=0)

        assert result.games_played == 4
        assert 0.0 <= result.win_rate <= 1.0
        assert 0.0 <= result.unfinished_rate <= 1.0
        assert result.avg_length <= 40

    def test_search_agent_against_random(self):
        from evaluation import Evaluator, RandomAgent, SearchAgent

        evaluator = Evaluator(env_fn=short_env, max_steps=30)
        result = evaluator.evaluate(
            SearchAgent("novice", seed=0), n_games=2, opponent=RandomAgent(seed=1), seed=0
        )
        assert result.games_played == 2

    def test_compare(self):
        from evaluation import Evaluator, RandomAgent

        evaluator = Evaluator(env_fn=short_env, max_steps=30)
        result = evaluator.compare(RandomAgent("agent1", seed=0), RandomAgent("agent2", seed=1), n_games=2, seed=0)

        assert set(result) == {"agent1_wins", "agent2_wins", "agent1_win_rate", "agent2_win_rate"}
        assert result["agent1_wins"] + result["agent2_wins"] <= 2


class TestArena:
    """Arena tests"""

    def test_play_match(self):
        from evaluation import Arena, RandomAgent

        arena = Arena(env_fn=short_env, max_steps=30)
        results = arena.play_match(RandomAgent("a", seed=0), RandomAgent("b", seed=1), n_games=2, seed=0)

        assert len(results) == 2
        for r in results:
            assert (r.white, r.blue) == ("a", "b")
            assert r.winner in (None, "a", "b")
            assert r.length <= 30

    def test_round_robin(self):
        from evaluation import Arena, EloSystem, RandomAgent

        elo = EloSystem()
        arena = Arena(env_fn=short_env, elo=elo, max_steps=20)
        agents = [RandomAgent(name, seed=i) for i, name in enumerate(("a", "b", "c"))]
        result = arena.round_robin(agents, games_per_match=2, seed=0)

        assert result.total_games == 6
        assert len(result.matches) == 6
        for name in ("a", "b", "c"):
            assert result.standings[name]["games"] == 4
            assert elo.get_player(name).games == 4
        assert len(result.get_ranking()) == 3
        assert "Tournament Results (6 games)" in repr(result)


class TestMatchResult:
    """MatchResult tests"""

    def test_loser(self):
        from evaluation import MatchResult

        assert MatchResult("a", "b", "a", "siegemate", 10).loser == "b"
        assert MatchResult("a", "b", "b", "elimination", 10).loser == "a"
        assert MatchResult("a", "b", None, None, 10).loser is None


class TestEloSystem:
    """EloSystem tests"""

    def test_initial_rating(self):
        from evaluation import EloSystem

        elo = EloSystem(initial_rating=1500)
        player = elo.get_player("new")
        assert player.rating == 1500
        assert player.games == 0

    def test_record_match(self):
        from evaluation import EloSystem

        elo = EloSystem(k_factor=32)
        winner, loser = elo.record_match("a", "b")
        assert winner == pytest.approx(1516)
        assert loser == pytest.approx(1484)
        assert elo.get_player("a").wins == 1
        assert elo.get_player("b").losses == 1

    def test_record_draw(self):
        from evaluation import EloSystem

        elo = EloSystem()
        elo.record_draw("a", "b")
        assert elo.get_player("a").rating == pytest.approx(1500)
        assert elo.get_player("a").draws == 1
        assert elo.get_player("b").score == 0.5

    def test_expected_score(self):
        from evaluation import EloSystem

        elo = EloSystem()
        assert elo.expected_score(1500, 1500) == pytest.approx(0.5)
        assert elo.expected_score(1900, 1500) == pytest.approx(10 / 11)

    def test_floor(self):
        from evaluation import EloSystem

        elo = EloSystem(floor_rating=1490)
        elo.record_match("a", "b")
        assert elo.get_player("b").rating == 1490

    def test_from_ai_ratings(self):
        from evaluation import EloSystem

        elo = EloSystem.from_ai_ratings(["novice", "expert"])
        assert set(elo.players) == {"novice", "expert"}
        assert elo.get_player("novice").rating == 600
        assert [p.name for p in elo.get_ranking()] == ["expert", "novice"]

    def test_save_load(self, tmp_path):
        from evaluation import EloSystem

        elo = EloSystem()
        elo.record_match("a", "b")
        path = tmp_path / "elo.json"
        elo.save(str(path))

        restored = EloSystem()
        restored.load(str(path))
        assert restored.get_player("a").rating == pytest.approx(elo.get_player("a").rating)
        assert restored.get_player("b").peak_rating == 1500
        assert restored.to_dict() == elo.to_dict()
