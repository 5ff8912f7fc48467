# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures: a small Maven-style project with one mapped pair.

Layout:
    shop/
      pom.xml
      src/main/java/com/x/UserMapper.java
      src/main/java/com/x/model/User.java
      src/main/resources/mapper/UserMapper.xml
"""

from pathlib import Path
from typing import Any, Dict, Optional

import pytest

from mapper_links.config import Config

USER_MAPPER_JAVA = """package com.x;

import com.x.model.User;
import java.util.List;
import org.apache.ibatis.annotations.Mapper;
import org.apache.ibatis.annotations.Param;

@Mapper
public interface UserMapper {

    /**
     * Find a user by id.
     * @param userId the user id
     */
    User findById(Long arg0);

    List<User> findByName(@Param("name") String name, @Param("limit") int limit);

    int insertUser(User user);
}
"""

USER_JAVA = """package com.x.model;

import java.io.Serializable;

public class User implements Serializable {
    private static final long serialVersionUID = 1L;

    private Long id;
    private String name;
    private String email;

    public Long getId() {
        return id;
    }
}
"""

USER_MAPPER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE mapper PUBLIC "-//mybatis.org//DTD Mapper 3.0//EN" "http://mybatis.org/dtd/mybatis-3-mapper.dtd">
<mapper namespace="com.x.UserMapper">
    <select id="findById" resultType="com.x.model.User">
        SELECT * FROM users WHERE id = #{userId}
    </select>
    <select id="findByName" resultType="com.x.model.User">
        SELECT * FROM users WHERE name = #{name} LIMIT #{limit}
    </select>
    <insert id="insertUser">
        INSERT INTO users (name, email) VALUES (#{name}, #{email})
    </insert>
</mapper>
"""


def write_file(path: Path, content: str) -> Path:
    """Write content to path, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def mapper_java(package: str, name: str, methods: str = "    int count();\n") -> str:
    """Source of a minimal annotated mapper interface."""
    return (
        f"package {package};\n\n"
        "import org.apache.ibatis.annotations.Mapper;\n\n"
        "@Mapper\n"
        f"public interface {name} {{\n{methods}}}\n"
    )


def statement_xml(namespace: Optional[str], body: str = "") -> str:
    """Source of a minimal statement file, with or without a namespace."""
    attribute = f' namespace="{namespace}"' if namespace else ""
    return f'<?xml version="1.0" encoding="UTF-8"?>\n<mapper{attribute}>\n{body}</mapper>\n'


def make_config(**overrides: Any) -> Config:
    """Config built from defaults plus overrides."""
    values: Dict[str, Any] = dict(overrides)
    return Config.from_dict(values)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Maven-style project with UserMapper.java mapped to mapper/UserMapper.xml."""
    root = (tmp_path / "shop").resolve()
    write_file(root / "pom.xml", "<project></project>\n")
    write_file(root / "src/main/java/com/x/UserMapper.java", USER_MAPPER_JAVA)
    write_file(root / "src/main/java/com/x/model/User.java", USER_JAVA)
    write_file(root / "src/main/resources/mapper/UserMapper.xml", USER_MAPPER_XML)
    return root


@pytest.fixture
def interface_path(project: Path) -> str:
    return str(project / "src/main/java/com/x/UserMapper.java")


@pytest.fixture
def statement_path(project: Path) -> str:
    return str(project / "src/main/resources/mapper/UserMapper.xml")
