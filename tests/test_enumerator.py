# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for WorkspaceEnumerator."""

from conftest import write_file

from mapper_links.enumerator import WorkspaceEnumerator


class TestWorkspaceEnumerator:
    """Tests for candidate file enumeration and the ignore policy."""

    def test_populations_are_disjoint(self, project):
        enumerator = WorkspaceEnumerator(str(project))

        interfaces = enumerator.list_interface_files()
        statements = enumerator.list_statement_files()

        assert str(project / "src/main/java/com/x/UserMapper.java") in interfaces
        assert str(project / "src/main/resources/mapper/UserMapper.xml") in statements
        assert all(p.endswith(".java") for p in interfaces)
        assert all(p.endswith(".xml") for p in statements)

    def test_excluded_directories_pruned(self, project):
        write_file(project / "target/classes/mapper/UserMapper.xml", "<mapper/>")
        write_file(project / "node_modules/pkg/a.xml", "<a/>")
        enumerator = WorkspaceEnumerator(str(project), exclude_directories=["target"])

        statements = enumerator.list_statement_files()

        assert not any("/target/" in p for p in statements)
        assert not any("/node_modules/" in p for p in statements)

    def test_glob_exclusion(self, project):
        write_file(project / "gen-sources/Other.java", "interface Other {}")
        enumerator = WorkspaceEnumerator(str(project), exclude_directories=["gen-*"])

        assert not any("gen-sources" in p for p in enumerator.list_interface_files())

    def test_test_directories_excluded_by_default(self, project):
        write_file(project / "src/test/java/com/x/UserMapperTest.java", "class UserMapperTest {}")

        default = WorkspaceEnumerator(str(project))
        with_tests = WorkspaceEnumerator(str(project), include_test_directories=True)

        assert not any("UserMapperTest" in p for p in default.list_interface_files())
        assert any("UserMapperTest" in p for p in with_tests.list_interface_files())

    def test_limit(self, project):
        write_file(project / "src/main/resources/mapper/OrderMapper.xml", "<mapper/>")
        enumerator = WorkspaceEnumerator(str(project))

        assert len(enumerator.list_statement_files(limit=1)) == 1
        assert len(list(enumerator.iter_statement_files(limit=0))) == 0

    def test_iteration_is_sorted(self, project):
        write_file(project / "src/main/resources/mapper/AMapper.xml", "<mapper/>")
        enumerator = WorkspaceEnumerator(str(project))

        mapper_dir = [p for p in enumerator.iter_statement_files() if "/mapper/" in p]

        assert mapper_dir == sorted(mapper_dir)

    def test_iter_matching_files(self, project):
        write_file(project / "src/main/resources/application-dev.yml", "a: 1\n")
        enumerator = WorkspaceEnumerator(str(project))

        found = list(enumerator.iter_matching_files(["application-*.yml"]))

        assert found == [str(project / "src/main/resources/application-dev.yml")]

    def test_should_ignore(self, project):
        enumerator = WorkspaceEnumerator(str(project), exclude_directories=["target"])

        assert enumerator.should_ignore(str(project / "target/a/UserMapper.xml"))
        assert enumerator.should_ignore("/elsewhere/UserMapper.xml")
        assert not enumerator.should_ignore(str(project / "src/main/java/com/x/UserMapper.java"))
        # Relative paths are taken from the root
        assert not enumerator.should_ignore("src/main/resources/mapper/UserMapper.xml")

    def test_file_named_like_excluded_directory_is_kept(self, project):
        enumerator = WorkspaceEnumerator(str(project), exclude_directories=["build"])

        assert not enumerator.should_ignore(str(project / "src/build"))

    def test_is_in_workspace(self, project, tmp_path):
        enumerator = WorkspaceEnumerator(str(project))

        assert enumerator.is_in_workspace(str(project / "pom.xml"))
        assert not enumerator.is_in_workspace(str(tmp_path / "other"))
